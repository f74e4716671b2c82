"""
Object store interface consumed by the deployment core.

The reconciler and upload pipeline only need these seven calls. Using a
Protocol means they don't know whether they're talking to S3, an
S3-compatible service, or the in-memory mock used in tests.

Implementations must raise StoreError for every provider failure.
"""

from typing import Protocol


class ObjectStoreClient(Protocol):
    """Capability interface over a bucket-based object store."""

    async def list_buckets(self) -> list[str]:
        """Names of every bucket visible to the caller."""
        ...

    async def list_objects(self, bucket: str) -> list[str]:
        """Every object key in the bucket."""
        ...

    async def delete_objects(self, bucket: str, keys: list[str]) -> None:
        """Delete a batch of keys."""
        ...

    async def create_bucket(self, bucket: str) -> None:
        ...

    async def put_bucket_website(
        self,
        bucket: str,
        index_document: str,
        error_document: str,
    ) -> None:
        ...

    async def put_bucket_policy(self, bucket: str, policy_document: str) -> None:
        ...

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
    ) -> None:
        """Write (or overwrite) a single object."""
        ...
