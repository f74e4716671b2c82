"""
Static site deployment.

Contains the bucket reconciler, upload pipeline, orchestrator and the
domain models and errors they share.
"""

from .errors import (
    DeploymentError,
    FilesystemError,
    MissingBuildOutput,
    MissingConfiguration,
    StoreError,
    UploadCancelled,
    UploadError,
)
from .models import (
    AccessPolicy,
    BucketState,
    DeploymentResult,
    DeploymentTarget,
    ReconcileStage,
    UploadFailure,
    UploadReport,
    UploadTask,
    WebsiteConfig,
)
from .orchestrator import SiteDeployer
from .reconciler import BucketReconciler
from .storage import ObjectStoreClient
from .uploader import UploadPipeline, derive_remote_key, resolve_content_type

__all__ = [
    "DeploymentError",
    "FilesystemError",
    "MissingBuildOutput",
    "MissingConfiguration",
    "StoreError",
    "UploadCancelled",
    "UploadError",
    "AccessPolicy",
    "BucketState",
    "DeploymentResult",
    "DeploymentTarget",
    "ReconcileStage",
    "UploadFailure",
    "UploadReport",
    "UploadTask",
    "WebsiteConfig",
    "SiteDeployer",
    "BucketReconciler",
    "ObjectStoreClient",
    "UploadPipeline",
    "derive_remote_key",
    "resolve_content_type",
]
