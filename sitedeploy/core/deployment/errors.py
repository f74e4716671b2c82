"""
Errors raised by the deployment core.

Everything derives from DeploymentError so callers (the CLI, a CI job)
can catch one type and still tell stages apart by subclass.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import UploadReport


class DeploymentError(Exception):
    """Base class for every failure a deployment run can surface."""
    pass


class MissingBuildOutput(DeploymentError):
    """Raised when the local build directory does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f'Could not find build output folder "{path}".')


class MissingConfiguration(DeploymentError):
    """Raised when a required setting (the bucket name) is not supplied."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Please specify {field} for the deployment.")


class StoreError(DeploymentError):
    """
    Raised when any object store call fails.

    Wraps the provider's exception (available as `cause` and via
    `__cause__`) so the core never depends on botocore exception types.
    """

    def __init__(
        self,
        operation: str,
        bucket: Optional[str] = None,
        cause: Optional[BaseException] = None,
        detail: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.bucket = bucket
        self.cause = cause

        message = f"{operation} failed"
        if bucket:
            message += f" for bucket {bucket}"
        if cause is not None:
            message += f": {cause}"
        elif detail:
            message += f": {detail}"
        super().__init__(message)


class FilesystemError(DeploymentError):
    """Raised when a stat, directory listing or file read fails."""

    def __init__(self, path: str, cause: Optional[BaseException] = None) -> None:
        self.path = path
        self.cause = cause
        message = f"Filesystem access failed for {path}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class UploadError(DeploymentError):
    """
    Aggregate failure of the upload pipeline.

    Raised only after every file has been attempted; `report` lists what
    went up and what did not.
    """

    def __init__(self, report: "UploadReport", message: Optional[str] = None) -> None:
        self.report = report
        if message is None:
            message = f"{len(report.failures)} of {report.attempted} uploads failed"
        super().__init__(message)


class UploadCancelled(UploadError):
    """Raised when the pipeline was cancelled before all files were uploaded."""

    def __init__(self, report: "UploadReport") -> None:
        super().__init__(
            report,
            f"Upload cancelled with {report.cancelled} files not uploaded",
        )
