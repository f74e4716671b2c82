"""
Deployment configuration using Pydantic settings.

Configuration is loaded from environment variables (and a .env file)
with sensible defaults. Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

AWS credentials are deliberately absent: boto3 resolves them itself.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Deployment settings loaded from environment variables.

    All settings can be overridden via environment variables, e.g.
    BUCKET_NAME=my-site UPLOAD_CONCURRENCY=16.
    """

    # Target
    bucket_name: str = Field(
        default="",
        description="Bucket to deploy the site into. Required."
    )
    service_path: str = Field(
        default=".",
        description="Project root. The build output is looked up relative to it."
    )
    client_dist_path: Optional[str] = Field(
        default=None,
        description="Build output directory. Defaults to <service_path>/client/dist."
    )
    stage: str = Field(
        default="dev",
        description="Deployment stage label, shown in progress output."
    )

    # Object storage
    aws_region: str = Field(
        default="us-east-1",
        description="Region for the S3 client and for new buckets."
    )
    aws_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom endpoint for S3-compatible services (MinIO, R2). Leave unset for AWS."
    )
    arn_partition: str = Field(
        default="aws",
        description="ARN partition for the bucket policy resource (aws, aws-cn, aws-us-gov)."
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use the in-memory store instead of S3. Enables local runs without credentials."
    )

    # Upload behavior
    upload_concurrency: int = Field(
        default=8,
        ge=1,
        description="Maximum concurrent uploads. Bounds open files and connections."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def local_root_path(self) -> str:
        """
        Absolute path of the build output directory.

        An explicit client_dist_path wins; relative values are resolved
        against service_path.
        """
        if self.client_dist_path:
            path = os.path.join(self.service_path, self.client_dist_path)
        else:
            path = os.path.join(self.service_path, "client", "dist")
        return os.path.abspath(path)

    def validate_required_fields(self) -> list[str]:
        """
        Return the environment variables that must be set but aren't.

        Only the bucket name is required; everything else has a default.
        """
        missing = []

        if not self.bucket_name.strip():
            missing.append("BUCKET_NAME")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
