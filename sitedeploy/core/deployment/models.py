"""
Domain models for static site deployment.

These are plain values: they describe what a deployment targets, what
state the bucket was found in, and what the upload pipeline did. No
boto3, no filesystem access, nothing that needs mocking.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .errors import DeploymentError, MissingConfiguration

INDEX_DOCUMENT = "index.html"
ERROR_DOCUMENT = "error.html"

# Generic binary type used when the extension is unknown
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class DeploymentTarget:
    """
    Where a deployment run reads from and writes to.

    Frozen because a run never changes its target halfway through.
    Directory existence is checked by the orchestrator, not here, since
    it can change between construction and use.
    """
    bucket_name: str
    local_root_path: str

    def __post_init__(self) -> None:
        if not self.bucket_name or not self.bucket_name.strip():
            raise MissingConfiguration("bucket_name")


class ReconcileStage(Enum):
    """Where the reconciler is in its fixed sequence."""
    UNKNOWN = "unknown"
    MISSING = "missing"
    EXISTING = "existing"
    DRAINED = "drained"
    CREATED = "created"
    KEPT = "kept"
    CONFIGURED = "configured"
    AUTHORIZED = "authorized"  # terminal


@dataclass(frozen=True)
class BucketState:
    """
    What the reconciler learned about the bucket.

    Each step returns a new BucketState (via dataclasses.replace) instead
    of flipping flags on the reconciler, so the state a step acted on is
    always the one passed to it.
    """
    exists: bool = False
    has_objects: bool = False
    stage: ReconcileStage = ReconcileStage.UNKNOWN


@dataclass(frozen=True)
class WebsiteConfig:
    """Index and error documents served by the bucket website."""
    index_document: str = INDEX_DOCUMENT
    error_document: str = ERROR_DOCUMENT


@dataclass(frozen=True)
class AccessPolicy:
    """
    Public-read bucket policy.

    Grants GetObject on every key to every principal. The partition is
    configurable for aws-cn / aws-us-gov style ARNs.
    """
    bucket_name: str
    partition: str = "aws"

    @property
    def resource(self) -> str:
        return f"arn:{self.partition}:s3:::{self.bucket_name}/*"

    def document(self) -> dict[str, Any]:
        return {
            "Version": "2008-10-17",
            "Id": "Policy1392681112290",
            "Statement": [
                {
                    "Sid": "Stmt1392681101677",
                    "Effect": "Allow",
                    "Principal": {"AWS": "*"},
                    "Action": "s3:GetObject",
                    "Resource": self.resource,
                }
            ],
        }

    def to_json(self) -> str:
        return json.dumps(self.document())


@dataclass(frozen=True)
class UploadTask:
    """A single file to upload. Consumed once by one put_object call."""
    local_path: str
    remote_key: str
    content_type: str

    def __post_init__(self) -> None:
        if not self.remote_key or self.remote_key.startswith("/"):
            raise ValueError(f"Invalid object key: {self.remote_key!r}")


@dataclass
class UploadFailure:
    """A file (or directory) that could not be uploaded, and why."""
    local_path: str
    error: DeploymentError
    remote_key: Optional[str] = None


@dataclass
class UploadReport:
    """
    Outcome of one upload pipeline run.

    Filled in by the pipeline's workers as they finish; only read by the
    caller after every worker has been joined.
    """
    uploaded: list[UploadTask] = field(default_factory=list)
    failures: list[UploadFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    cancelled: int = 0  # queued tasks never started
    interrupted: bool = False  # walk or workers stopped by the cancel event

    @property
    def attempted(self) -> int:
        return len(self.uploaded) + len(self.failures)

    @property
    def succeeded(self) -> bool:
        return not self.failures and not self.interrupted

    @property
    def uploaded_keys(self) -> list[str]:
        return sorted(task.remote_key for task in self.uploaded)


@dataclass
class DeploymentResult:
    """Everything a finished run produced."""
    target: DeploymentTarget
    bucket_state: BucketState
    report: UploadReport
    website_url: str = ""


def website_endpoint(bucket_name: str, region: str) -> str:
    """Conventional S3 website URL for a bucket in a region."""
    return f"http://{bucket_name}.s3-website-{region}.amazonaws.com/"
