"""
Object storage integration for website buckets.

Supports AWS S3 and S3-compatible services via boto3.
Includes mock mode for local development without credentials.
"""

from .client import (
    MockObjectStoreClient,
    S3ObjectStoreClient,
    StoreConfig,
    create_object_store_client,
)

__all__ = [
    "MockObjectStoreClient",
    "S3ObjectStoreClient",
    "StoreConfig",
    "create_object_store_client",
]
