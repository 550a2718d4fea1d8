"""Storage and persistence layer for the task store."""

from .audit import AuditLogObserver
from .exceptions import (
    CascadeCycleError,
    DanglingReferenceError,
    DuplicateValueError,
    LockTimeoutError,
    RecordNotFoundError,
    RecordValidationError,
    ReferencedByChildrenError,
    RelationshipRegistrationError,
    StorageConfigurationError,
    StorageError,
    StorageOperationError,
    StorageValidationError,
    UnknownEntityError,
)
from .factory import create_storage, validate_storage_config
from .indexes import SecondaryIndex
from .interface import ChangeCallback, StorageInterface
from .locks import TableLockManager
from .memory import InMemoryStorage
from .models import (
    ChangeEvent,
    ChangeOperation,
    HealthCheckResult,
    HealthStatus,
    Record,
    StorageConfig,
    StoreMetrics,
)
from .relationships import (
    DeleteRecord,
    JoinTable,
    NullifyField,
    RecordLookup,
    RelationshipRegistry,
    UnlinkJoinEntry,
)

__all__ = [
    # Core interface
    "ChangeCallback",
    "StorageInterface",
    # Implementations
    "InMemoryStorage",
    # Building blocks
    "JoinTable",
    "RecordLookup",
    "RelationshipRegistry",
    "SecondaryIndex",
    "TableLockManager",
    "DeleteRecord",
    "NullifyField",
    "UnlinkJoinEntry",
    # Observers
    "AuditLogObserver",
    # Factory functions
    "create_storage",
    "validate_storage_config",
    # Models
    "ChangeEvent",
    "ChangeOperation",
    "HealthCheckResult",
    "HealthStatus",
    "Record",
    "StorageConfig",
    "StoreMetrics",
    # Exceptions
    "StorageError",
    "StorageConfigurationError",
    "StorageOperationError",
    "StorageValidationError",
    "CascadeCycleError",
    "DanglingReferenceError",
    "DuplicateValueError",
    "LockTimeoutError",
    "RecordNotFoundError",
    "RecordValidationError",
    "ReferencedByChildrenError",
    "RelationshipRegistrationError",
    "UnknownEntityError",
]
