# src/files_api/settings.py
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from files_api.settings import get_settings
        settings = get_settings()
        storage_dir = settings.storage_dir
    """

    # Application Settings
    app_name: str = Field(
        default="files-manager",
        description="Application name"
    )

    # Deployment Mode
    deployment_mode: str = Field(
        default="local-dev",
        description="Deployment mode: local-dev, aws-mock, or aws-prod"
    )

    # Document store
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        alias="MONGODB_URI",
        description="MongoDB connection string"
    )

    mongodb_db: str = Field(
        default="files_manager",
        alias="MONGODB_DB",
        description="MongoDB database name"
    )

    # Key-value store
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        alias="REDIS_URL",
        description="Redis connection URL for session tokens"
    )

    session_ttl_seconds: int = Field(
        default=60 * 60 * 24,
        gt=0,
        description="Lifetime of a session token in seconds"
    )

    # Storage Configuration
    storage_dir: str = Field(
        default="/tmp/files_manager",
        alias="FOLDER_PATH",
        description="Local directory holding file payloads and thumbnails"
    )

    # File listing and uploads
    page_size: int = Field(
        default=20,
        gt=0,
        description="Number of records per page when listing files"
    )

    duplicate_names: str = Field(
        default="allow",
        description="Sibling records with the same name: allow or reject"
    )

    thumbnail_widths: List[int] = Field(
        default=[500, 250, 100],
        description="Widths of the thumbnails derived from image uploads"
    )

    # Queue and worker
    queue_max_pending: int = Field(
        default=10000,
        gt=0,
        description="Maximum number of pending tasks in the local queue"
    )

    worker_concurrency: int = Field(
        default=1,
        ge=1,
        description="Number of tasks the worker processes at the same time"
    )

    worker_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per task before a transient failure becomes final"
    )

    worker_retry_delay: float = Field(
        default=1.0,
        ge=0,
        description="Initial retry delay in seconds, doubled on each attempt"
    )

    worker_poll_interval: float = Field(
        default=1.0,
        ge=0,
        description="Pause between polls when the queue is empty"
    )

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_DEFAULT_REGION"
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        alias="AWS_ACCESS_KEY_ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        alias="AWS_SECRET_ACCESS_KEY"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL"
    )

    # SQS Configuration
    sqs_queue_name: str = Field(
        default="thumbnail-generation",
        description="SQS queue name"
    )

    sqs_queue_url: Optional[str] = Field(
        default=None,
        alias="SQS_QUEUE_URL",
        description="Full SQS queue URL"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator('deployment_mode', mode='before')
    @classmethod
    def normalize_deployment_mode(cls, v):
        """Normalize deployment mode values for backwards compatibility."""
        if v:
            mode_mapping = {
                "local-mock": "local-dev",
                "local": "local-dev",
                "cloud": "aws-prod",
            }
            return mode_mapping.get(v, v)
        return v

    @field_validator('deployment_mode')
    @classmethod
    def validate_deployment_mode(cls, v):
        """Validate deployment mode is one of the allowed values."""
        valid_modes = ["local-dev", "aws-mock", "aws-prod"]
        if v not in valid_modes:
            raise ValueError(f"Invalid deployment_mode: {v}. Must be one of {valid_modes}")
        return v

    @field_validator('duplicate_names')
    @classmethod
    def validate_duplicate_names(cls, v):
        valid_policies = ["allow", "reject"]
        if v not in valid_policies:
            raise ValueError(f"Invalid duplicate_names: {v}. Must be one of {valid_policies}")
        return v

    @model_validator(mode='after')
    def set_aws_defaults_for_local_modes(self):
        """Point local and mock modes at a local AWS endpoint with mock credentials."""
        if self.deployment_mode in ["local-dev", "aws-mock"]:
            if self.aws_endpoint_url is None:
                self.aws_endpoint_url = "http://localhost:5000"
            if self.aws_access_key_id is None:
                self.aws_access_key_id = "mock"
            if self.aws_secret_access_key is None:
                self.aws_secret_access_key = "mock"
        # For aws-prod, leave credentials unset so the execution role handles auth
        return self

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
