"""Configuration management for the task store.

This module handles environment-based configuration using Pydantic Settings.
Every setting can be overridden with a ``TASKSTORE_`` prefixed environment
variable, e.g. ``TASKSTORE_LOCK_TIMEOUT_SECONDS=2``.
"""

from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings

from .core import BUNDLED_SCHEMA_DIR
from .storage import StorageConfig


class Settings(BaseSettings):
    """Task store configuration."""

    # Environment
    environment: Literal["development", "testing", "production"] = Field(
        default="development", description="Application environment"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=False, description="Enable JSON formatted logs")

    # Schema configuration
    schema_dir: str = Field(
        default=str(BUNDLED_SCHEMA_DIR),
        description="Directory containing entity schema YAML files",
    )

    # Storage configuration fields (flattened)
    backend_type: str = Field(default="memory", description="Storage backend")
    lock_timeout_seconds: float = Field(
        default=5.0, description="Seconds to wait for table locks"
    )
    audit_log: bool = Field(
        default=True, description="Log every change event through structlog"
    )

    class Config:
        """Pydantic configuration."""

        env_prefix = "TASKSTORE_"
        case_sensitive = False

    @computed_field  # type: ignore
    @property
    def storage(self) -> StorageConfig:
        """Create storage configuration from individual fields."""
        return StorageConfig(
            backend_type=self.backend_type,
            lock_timeout_seconds=self.lock_timeout_seconds,
            audit_log=self.audit_log,
        )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"
