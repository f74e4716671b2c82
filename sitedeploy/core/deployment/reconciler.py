"""
Bucket reconciliation.

Brings the target bucket into a known state before upload: it exists,
it holds no objects, it serves index.html / error.html as a website and
anyone can read its objects.

The sequence is fixed and each step depends on the previous one, so
steps run strictly one after another:

    discover -> drain (existing only) -> create (missing only)
             -> configure website -> authorize public read

Configure and authorize always run. That makes the whole thing safe to
re-run: whatever state the bucket starts in, it ends in the same one.
There are no retries here; a StoreError from any step aborts the run.
"""

import logging
from dataclasses import replace

from .models import AccessPolicy, BucketState, ReconcileStage, WebsiteConfig
from .storage import ObjectStoreClient

logger = logging.getLogger(__name__)


class BucketReconciler:
    """
    Drives an ObjectStoreClient through the reconciliation sequence.

    Holds no per-run state. The BucketState each step returns is passed
    to the next one, so a single reconciler can be reused across runs.
    """

    def __init__(
        self,
        store: ObjectStoreClient,
        website: WebsiteConfig = WebsiteConfig(),
        arn_partition: str = "aws",
    ) -> None:
        self._store = store
        self._website = website
        self._arn_partition = arn_partition

    async def reconcile(self, bucket_name: str) -> BucketState:
        """Run every step in order and return the terminal state."""
        state = await self._discover(bucket_name)
        state = await self._drain(bucket_name, state)
        state = await self._create(bucket_name, state)
        state = await self._configure(bucket_name, state)
        state = await self._authorize(bucket_name, state)

        logger.info(
            "Bucket reconciled",
            extra={
                "bucket": bucket_name,
                "existed": state.exists,
                "had_objects": state.has_objects,
            }
        )
        return state

    async def _discover(self, bucket_name: str) -> BucketState:
        buckets = await self._store.list_buckets()
        exists = bucket_name in buckets

        if exists:
            logger.info("Bucket %s already exists", bucket_name)
            return BucketState(exists=True, stage=ReconcileStage.EXISTING)

        return BucketState(exists=False, stage=ReconcileStage.MISSING)

    async def _drain(self, bucket_name: str, state: BucketState) -> BucketState:
        if not state.exists:
            return state

        logger.info("Listing objects in bucket %s...", bucket_name)
        keys = await self._store.list_objects(bucket_name)

        # Skip the delete call entirely; S3 rejects an empty Delete payload
        if not keys:
            return replace(state, has_objects=False, stage=ReconcileStage.DRAINED)

        logger.info(
            "Deleting all objects from bucket %s...",
            bucket_name,
            extra={"bucket": bucket_name, "count": len(keys)},
        )
        await self._store.delete_objects(bucket_name, keys)

        return replace(state, has_objects=True, stage=ReconcileStage.DRAINED)

    async def _create(self, bucket_name: str, state: BucketState) -> BucketState:
        if state.exists:
            return replace(state, stage=ReconcileStage.KEPT)

        logger.info("Creating bucket %s...", bucket_name)
        await self._store.create_bucket(bucket_name)

        return replace(state, stage=ReconcileStage.CREATED)

    async def _configure(self, bucket_name: str, state: BucketState) -> BucketState:
        logger.info("Configuring website bucket %s...", bucket_name)
        await self._store.put_bucket_website(
            bucket_name,
            self._website.index_document,
            self._website.error_document,
        )
        return replace(state, stage=ReconcileStage.CONFIGURED)

    async def _authorize(self, bucket_name: str, state: BucketState) -> BucketState:
        logger.info("Configuring policy for bucket %s...", bucket_name)
        policy = AccessPolicy(bucket_name, partition=self._arn_partition)
        await self._store.put_bucket_policy(bucket_name, policy.to_json())
        return replace(state, stage=ReconcileStage.AUTHORIZED)
