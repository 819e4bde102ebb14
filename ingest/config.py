"""
Configuration Management

Pydantic-settings based configuration for the grants ingest Lambdas.
Environment variable names match the names used by the deployed functions,
so no prefix is applied. All names are case-insensitive.
"""

import re
from functools import lru_cache
from typing import Literal

from botocore.config import Config
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Example: GRANTS_SOURCE_DATA_BUCKET_NAME=grants-source-data
    """

    model_config = SettingsConfigDict(
        env_file=[".env.local", ".env"],  # Try .env.local first
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # PrepareFFISEmail
    grants_source_data_bucket_name: str = Field(
        default="grants-source-data",
        description="S3 bucket receiving validated FFIS digest emails",
    )
    ffis_digest_email_address: str = Field(
        default="ffis.org",
        min_length=1,
        description="Substring that the FFIS sender address must contain",
    )

    # EnqueueFFISDownload
    ffis_url_pattern: str = Field(
        default=r"https://mcusercontent\.com/.+\.xlsx",
        description="Regular expression matching the FFIS spreadsheet download URL",
    )
    ffis_download_queue_url: str | None = Field(
        default=None,
        description="SQS queue URL receiving FFIS download URLs",
    )

    # S3 Configuration
    s3_use_path_style: bool = Field(
        default=False,
        description="Use path-style S3 addressing (for local S3 emulators)",
    )
    s3_endpoint_url: str | None = Field(
        default=None,
        description="S3 endpoint URL (for local development)",
    )
    s3_server_side_encryption: Literal["AES256", "aws:kms", "NONE"] = Field(
        default="AES256",
        description="Server-side encryption applied to written objects",
    )

    # SQS Configuration
    sqs_endpoint_url: str | None = Field(
        default=None,
        description="SQS endpoint URL (for local development)",
    )

    # AWS Configuration
    aws_region: str = Field(
        default="us-west-2",
        description="AWS region",
    )

    # Invocation Configuration
    max_concurrent_records: int = Field(
        default=10,
        ge=1,
        description="Maximum records processed concurrently per invocation",
    )
    cancellation_margin_ms: int = Field(
        default=500,
        ge=0,
        description="Cancel in-flight records this long before the Lambda deadline",
    )

    # Application Configuration
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    metrics_namespace: str = Field(
        default="GrantsIngest",
        description="CloudWatch namespace for embedded metrics",
    )

    @field_validator("ffis_url_pattern")
    @classmethod
    def _validate_url_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid URL pattern: {e}") from e
        return value

    @property
    def url_pattern(self) -> re.Pattern[str]:
        """Compiled download URL pattern."""
        return re.compile(self.ffis_url_pattern)

    @property
    def botocore_config(self) -> Config:
        """Shared botocore client configuration."""
        return Config(retries={"max_attempts": 3, "mode": "standard"})

    @property
    def s3_config(self) -> dict:
        """S3 client configuration."""
        config = {"region_name": self.aws_region}
        if self.s3_endpoint_url:
            config["endpoint_url"] = self.s3_endpoint_url
        boto_config = self.botocore_config
        if self.s3_use_path_style:
            boto_config = boto_config.merge(Config(s3={"addressing_style": "path"}))
        config["config"] = boto_config
        return config

    @property
    def sqs_config(self) -> dict:
        """SQS client configuration."""
        config = {"region_name": self.aws_region, "config": self.botocore_config}
        if self.sqs_endpoint_url:
            config["endpoint_url"] = self.sqs_endpoint_url
        return config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are loaded only once.
    Call Settings.model_validate({}) in tests to override.
    """
    return Settings()
