"""
Deployment orchestration.

Ties the two stages together: reconcile the bucket, then upload the
build output into it. Exposes an explicit validate() / run() pair so any
caller (the CLI here, a CI step, another tool) can drive a deployment
without a plugin framework in between.
"""

import logging
import os
from typing import Optional

from .errors import DeploymentError, MissingBuildOutput, MissingConfiguration
from .models import DeploymentResult, DeploymentTarget, website_endpoint
from .reconciler import BucketReconciler
from .uploader import UploadPipeline

logger = logging.getLogger(__name__)


class SiteDeployer:
    """
    Validates a deployment target and runs reconcile + upload against it.

    Failures from either stage abort the run and are re-raised as-is;
    this layer never retries.
    """

    def __init__(
        self,
        reconciler: BucketReconciler,
        pipeline: UploadPipeline,
        stage: str = "dev",
        region: str = "us-east-1",
    ) -> None:
        self._reconciler = reconciler
        self._pipeline = pipeline
        self._stage = stage
        self._region = region

    def validate(
        self,
        bucket_name: Optional[str],
        local_root_path: Optional[str],
    ) -> DeploymentTarget:
        """
        Check preconditions and build the target for run().

        The build directory is checked before the bucket name. Neither
        check touches the object store.

        Raises:
            MissingBuildOutput: local_root_path is not an existing directory
            MissingConfiguration: bucket_name is empty
        """
        if not local_root_path or not os.path.isdir(local_root_path):
            logger.error(
                "Build output not found",
                extra={"local_root_path": local_root_path}
            )
            raise MissingBuildOutput(local_root_path or "")

        if not bucket_name or not bucket_name.strip():
            logger.error("Bucket name is not configured")
            raise MissingConfiguration("bucket_name")

        return DeploymentTarget(
            bucket_name=bucket_name.strip(),
            local_root_path=os.path.abspath(local_root_path),
        )

    async def run(self, target: DeploymentTarget) -> DeploymentResult:
        """
        Reconcile the bucket, then upload the build output.

        The build directory is checked again first: it may have gone
        away since validate(), and nothing remote should happen if so.
        """
        if not os.path.isdir(target.local_root_path):
            raise MissingBuildOutput(target.local_root_path)

        logger.info(
            'Deploying client to stage "%s" in region "%s"...',
            self._stage,
            self._region,
            extra={"bucket": target.bucket_name}
        )

        stage = "reconcile"
        try:
            bucket_state = await self._reconciler.reconcile(target.bucket_name)

            stage = "upload"
            logger.info(
                "Uploading %s to bucket %s...",
                target.local_root_path,
                target.bucket_name,
                extra={"concurrency": self._pipeline.concurrency}
            )
            report = await self._pipeline.upload(
                target.local_root_path,
                target.bucket_name,
            )
        except DeploymentError as e:
            logger.error(
                "Deployment failed during %s stage",
                stage,
                extra={"bucket": target.bucket_name, "error": str(e)}
            )
            raise

        url = website_endpoint(target.bucket_name, self._region)
        logger.info(
            "Deployed %d files to %s",
            len(report.uploaded),
            url,
            extra={"bucket": target.bucket_name}
        )

        return DeploymentResult(
            target=target,
            bucket_state=bucket_state,
            report=report,
            website_url=url,
        )
