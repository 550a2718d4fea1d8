"""Storage-specific exceptions for the task store.

Every failure of a store operation is raised as a subclass of StorageError
carrying structured attributes, so callers can recover and render a precise
message (for example a form error) instead of parsing text.
"""

from typing import Any

from ..validation.errors import ValidationError


class StorageError(Exception):
    """Base exception for all storage operations.

    This is the parent class for all storage-related errors,
    allowing callers to catch all storage issues with a single except clause.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        """Initialize storage error.

        Args:
            message: Human-readable error description
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.cause = cause


class StorageOperationError(StorageError):
    """Error performing a storage operation."""

    pass


class StorageConfigurationError(StorageError):
    """Error in storage configuration.

    Raised when:
    - Storage configuration is invalid or incomplete
    - Unsupported backend type specified
    - Configuration values are out of valid range
    """

    pass


class RelationshipRegistrationError(StorageConfigurationError):
    """A relationship cannot be registered against the current schemas."""

    pass


class UnknownEntityError(StorageOperationError):
    """Operation names an entity kind with no registered schema."""

    def __init__(self, entity_name: str):
        super().__init__(f"No schema registered for entity '{entity_name}'")
        self.entity_name = entity_name


class RecordNotFoundError(StorageOperationError):
    """The addressed record does not exist."""

    def __init__(self, entity_name: str, record_id: int):
        super().__init__(f"{entity_name} with id {record_id} not found")
        self.entity_name = entity_name
        self.record_id = record_id


class StorageValidationError(StorageError):
    """Error validating data before storage.

    Raised when:
    - Record data doesn't match schema requirements
    - Reference integrity violations
    - Uniqueness violations
    """

    pass


class RecordValidationError(StorageValidationError):
    """Candidate record failed schema validation.

    ``errors`` holds every field failure found in one pass.
    """

    def __init__(self, entity_name: str, errors: list[ValidationError]):
        summary = "; ".join(str(error) for error in errors)
        super().__init__(f"Invalid {entity_name}: {summary}")
        self.entity_name = entity_name
        self.errors = errors

    @property
    def fields(self) -> list[str]:
        return [error.field for error in self.errors if error.field]


class DuplicateValueError(StorageValidationError):
    """A unique field already holds this value in another record."""

    def __init__(self, entity_name: str, field: str, value: Any):
        super().__init__(f"{entity_name}.{field} value {value!r} already exists")
        self.entity_name = entity_name
        self.field = field
        self.value = value


class DanglingReferenceError(StorageValidationError):
    """A foreign key or association points at a missing record."""

    def __init__(self, entity_name: str, field: str, value: Any, target_entity: str):
        super().__init__(
            f"{entity_name}.{field} references missing {target_entity} {value!r}"
        )
        self.entity_name = entity_name
        self.field = field
        self.value = value
        self.target_entity = target_entity


class ReferencedByChildrenError(StorageOperationError):
    """A restrict policy blocks deleting a record that still has dependents."""

    def __init__(self, entity_name: str, record_id: int, child_entity: str, count: int):
        super().__init__(
            f"Cannot delete {entity_name} {record_id}: referenced by "
            f"{count} {child_entity} record(s)"
        )
        self.entity_name = entity_name
        self.record_id = record_id
        self.child_entity = child_entity
        self.count = count


class CascadeCycleError(StorageOperationError):
    """Cascade delete reached a record already on the current cascade path."""

    def __init__(self, path: list[tuple[str, int]]):
        rendered = " -> ".join(f"{entity}:{record_id}" for entity, record_id in path)
        super().__init__(f"Cascade delete cycle detected: {rendered}")
        self.path = path


class LockTimeoutError(StorageOperationError):
    """Table locks could not be acquired within the configured timeout."""

    def __init__(self, entity_names: list[str], timeout: float):
        super().__init__(
            f"Timed out after {timeout}s waiting for locks on: "
            f"{', '.join(entity_names)}"
        )
        self.entity_names = entity_names
        self.timeout = timeout
