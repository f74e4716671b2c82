"""
Object store clients for website buckets.

Supports AWS S3 and S3-compatible services (MinIO, R2) through boto3,
with a mock mode for local development.

boto3 is synchronous, so every call runs in a worker thread via
asyncio.to_thread. That keeps the upload pipeline's concurrent puts from
blocking each other on the event loop.

Mock mode keeps buckets in memory, enabling full deployment runs in
tests without provisioning real storage.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ...core.deployment.errors import StoreError
from ...core.deployment.storage import ObjectStoreClient

logger = logging.getLogger(__name__)

# S3 rejects DeleteObjects requests with more than 1000 keys
MAX_DELETE_BATCH = 1000

# The one region where CreateBucket must not send a LocationConstraint
DEFAULT_REGION = "us-east-1"


@dataclass
class StoreConfig:
    """
    Configuration for the S3 client.

    Credentials are not part of this: boto3's default chain (env vars,
    shared config, instance role) supplies them.
    """
    region: str = DEFAULT_REGION
    endpoint_url: Optional[str] = None  # set for S3-compatible services


class S3ObjectStoreClient:
    """
    S3 implementation of ObjectStoreClient.

    Every boto3 failure is logged and re-raised as StoreError, naming the
    operation and bucket so the caller can tell which step broke.
    """

    def __init__(self, config: StoreConfig, s3_client: Any = None) -> None:
        """
        Initialize the client with boto3.

        We import boto3 here (not at module level) because mock mode
        doesn't need it. Tests can pass a pre-built (stubbed) s3_client.
        """
        self._config = config

        if s3_client is None:
            try:
                import boto3
                from botocore.config import Config
            except ImportError:
                raise ImportError(
                    "boto3 is required for S3 storage. Install with: pip install boto3"
                )

            s3_options = {}
            if config.endpoint_url:
                # S3-compatible services rarely support virtual-hosted addressing
                s3_options["addressing_style"] = "path"

            boto_config = Config(
                signature_version="s3v4",
                s3=s3_options,
            )

            s3_client = boto3.client(
                "s3",
                endpoint_url=config.endpoint_url,
                region_name=config.region,
                config=boto_config,
            )

        self._s3_client = s3_client

        logger.info(
            "Initialized S3 object store client",
            extra={
                "region": config.region,
                "endpoint": config.endpoint_url,
            }
        )

    async def _call(
        self,
        operation: str,
        bucket: Optional[str],
        func: Callable[..., Any],
        /,
        *args: Any,
        **params: Any,
    ) -> Any:
        # Positional-only, so boto3 params never collide with our own names
        try:
            return await asyncio.to_thread(func, *args, **params)
        except Exception as e:
            logger.error(
                "S3 call failed",
                extra={"operation": operation, "bucket": bucket, "error": str(e)}
            )
            raise StoreError(operation, bucket, e) from e

    async def list_buckets(self) -> list[str]:
        response = await self._call("list_buckets", None, self._s3_client.list_buckets)
        return [bucket["Name"] for bucket in response.get("Buckets", [])]

    async def list_objects(self, bucket: str) -> list[str]:
        """
        List every key in the bucket.

        Uses the list_objects_v2 paginator: a single request only returns
        the first 1000 keys.
        """
        return await self._call("list_objects", bucket, self._list_keys, bucket)

    def _list_keys(self, bucket: str) -> list[str]:
        paginator = self._s3_client.get_paginator("list_objects_v2")
        keys = []
        for page in paginator.paginate(Bucket=bucket):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    async def delete_objects(self, bucket: str, keys: list[str]) -> None:
        """
        Delete keys in batches of MAX_DELETE_BATCH.

        DeleteObjects reports per-key failures in the response body
        instead of raising, so those are checked and raised here.
        """
        for start in range(0, len(keys), MAX_DELETE_BATCH):
            batch = keys[start:start + MAX_DELETE_BATCH]

            response = await self._call(
                "delete_objects",
                bucket,
                self._s3_client.delete_objects,
                Bucket=bucket,
                Delete={
                    "Objects": [{"Key": key} for key in batch],
                    "Quiet": True,
                },
            )

            errors = response.get("Errors", [])
            if errors:
                first = errors[0]
                detail = (
                    f"{len(errors)} keys not deleted, first: "
                    f"{first.get('Key')} ({first.get('Code')}: {first.get('Message')})"
                )
                logger.error(
                    "Failed to delete objects",
                    extra={"bucket": bucket, "failed": len(errors)}
                )
                raise StoreError("delete_objects", bucket, detail=detail)

        logger.debug("Deleted objects", extra={"bucket": bucket, "count": len(keys)})

    async def create_bucket(self, bucket: str) -> None:
        params: dict[str, Any] = {"Bucket": bucket}

        # us-east-1 is the default location and rejects an explicit constraint
        if self._config.region and self._config.region != DEFAULT_REGION:
            params["CreateBucketConfiguration"] = {
                "LocationConstraint": self._config.region,
            }

        await self._call("create_bucket", bucket, self._s3_client.create_bucket, **params)

    async def put_bucket_website(
        self,
        bucket: str,
        index_document: str,
        error_document: str,
    ) -> None:
        await self._call(
            "put_bucket_website",
            bucket,
            self._s3_client.put_bucket_website,
            Bucket=bucket,
            WebsiteConfiguration={
                "IndexDocument": {"Suffix": index_document},
                "ErrorDocument": {"Key": error_document},
            },
        )

    async def put_bucket_policy(self, bucket: str, policy_document: str) -> None:
        await self._call(
            "put_bucket_policy",
            bucket,
            self._s3_client.put_bucket_policy,
            Bucket=bucket,
            Policy=policy_document,
        )

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
    ) -> None:
        await self._call(
            "put_object",
            bucket,
            self._s3_client.put_object,
            Bucket=bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
        )


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class StoredObject:
    body: bytes
    content_type: str


@dataclass
class MockBucket:
    """Everything the mock knows about one bucket."""
    objects: dict[str, StoredObject] = field(default_factory=dict)
    website: Optional[tuple[str, str]] = None  # (index_document, error_document)
    policy: Optional[str] = None


class MockObjectStoreClient:
    """
    In-memory object store for local development and tests.

    Behaves like S3 for the calls the deployment makes: operations on a
    bucket that doesn't exist raise StoreError, put_object overwrites.
    Every call is appended to `calls` as (operation, bucket) so tests
    can assert on ordering.
    """

    def __init__(self) -> None:
        self.buckets: dict[str, MockBucket] = {}
        self.calls: list[tuple[str, Optional[str]]] = []
        logger.info("Initialized mock object store client (in-memory)")

    def seed(self, bucket: str, objects: Optional[dict[str, bytes]] = None) -> None:
        """Create a bucket directly, optionally with objects, bypassing `calls`."""
        mock_bucket = self.buckets.setdefault(bucket, MockBucket())
        for key, body in (objects or {}).items():
            mock_bucket.objects[key] = StoredObject(body, "application/octet-stream")

    def _bucket(self, operation: str, bucket: str) -> MockBucket:
        if bucket not in self.buckets:
            raise StoreError(operation, bucket, detail="NoSuchBucket")
        return self.buckets[bucket]

    async def list_buckets(self) -> list[str]:
        self.calls.append(("list_buckets", None))
        return list(self.buckets)

    async def list_objects(self, bucket: str) -> list[str]:
        self.calls.append(("list_objects", bucket))
        return list(self._bucket("list_objects", bucket).objects)

    async def delete_objects(self, bucket: str, keys: list[str]) -> None:
        self.calls.append(("delete_objects", bucket))
        objects = self._bucket("delete_objects", bucket).objects
        for key in keys:
            objects.pop(key, None)

    async def create_bucket(self, bucket: str) -> None:
        self.calls.append(("create_bucket", bucket))
        self.buckets.setdefault(bucket, MockBucket())

    async def put_bucket_website(
        self,
        bucket: str,
        index_document: str,
        error_document: str,
    ) -> None:
        self.calls.append(("put_bucket_website", bucket))
        self._bucket("put_bucket_website", bucket).website = (index_document, error_document)

    async def put_bucket_policy(self, bucket: str, policy_document: str) -> None:
        self.calls.append(("put_bucket_policy", bucket))
        self._bucket("put_bucket_policy", bucket).policy = policy_document

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
    ) -> None:
        self.calls.append(("put_object", bucket))
        self._bucket("put_object", bucket).objects[key] = StoredObject(body, content_type)

        logger.debug(
            "Stored object in mock storage",
            extra={"bucket": bucket, "key": key, "size_bytes": len(body)}
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_object_store_client(
    config: Optional[StoreConfig] = None,
    mock_mode: bool = False,
) -> ObjectStoreClient:
    """
    Create an object store client.

    Args:
        config: S3 configuration (defaults to StoreConfig() when omitted)
        mock_mode: If True, return the in-memory client

    Returns:
        S3ObjectStoreClient or MockObjectStoreClient
    """
    if mock_mode:
        return MockObjectStoreClient()

    return S3ObjectStoreClient(config or StoreConfig())
