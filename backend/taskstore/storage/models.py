"""Pydantic models for storage interface return types.

These models provide strongly-typed, validated data structures for
all storage operations, ensuring type safety and clear contracts.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChangeOperation(str, Enum):
    """Kind of change reported to observers."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class HealthStatus(str, Enum):
    """Storage backend health status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    ERROR = "error"


class Record(BaseModel):
    """A stored record of one entity kind.

    Records handed out by the store are copies; mutating them never affects
    stored state.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Surrogate identifier assigned by the store")
    entity_name: str = Field(description="Entity kind (e.g., 'task')")
    fields: dict[str, Any] = Field(
        default_factory=dict, description="Field values keyed by field name"
    )
    created_at: datetime
    updated_at: datetime

    def get(self, field_name: str, default: Any = None) -> Any:
        """Return a field value, or ``default`` when it is absent."""
        return self.fields.get(field_name, default)

    def __getitem__(self, field_name: str) -> Any:
        return self.fields[field_name]


class ChangeEvent(BaseModel):
    """Notification emitted after a committed create, update or delete."""

    model_config = ConfigDict(frozen=True)

    entity_name: str
    record_id: int
    operation: ChangeOperation
    occurred_at: datetime


class HealthCheckResult(BaseModel):
    """Result of storage backend health check."""

    status: HealthStatus
    response_time_ms: float = Field(ge=0, description="Response time in milliseconds")
    backend_version: str | None = Field(None, description="Backend version info")
    additional_info: dict[str, Any] = Field(
        default_factory=dict, description="Backend-specific health metrics"
    )

    class Config:
        """Pydantic configuration."""

        use_enum_values = True


class StoreMetrics(BaseModel):
    """Store-wide counters for monitoring."""

    record_counts: dict[str, int] = Field(
        default_factory=dict, description="Live records per entity kind"
    )
    association_count: int = Field(ge=0, description="Join entries across tables")
    observer_failures: int = Field(ge=0, description="Observer calls that raised")
    last_updated: datetime = Field(description="When metrics were calculated")

    @property
    def total_records(self) -> int:
        return sum(self.record_counts.values())


class StorageConfig(BaseModel):
    """Storage configuration settings."""

    backend_type: str = "memory"
    lock_timeout_seconds: float = Field(5.0, gt=0, le=300)
    audit_log: bool = True
