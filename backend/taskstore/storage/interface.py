"""Abstract storage interface for entity store operations.

This module defines the storage interface contract using strongly-typed
Pydantic models for all return types, ensuring type safety and clear contracts.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from ..core import EntitySchema, Relationship, SchemaBundle
from .models import ChangeOperation, HealthCheckResult, Record, StoreMetrics

ChangeCallback = Callable[[str, int, ChangeOperation], None | Awaitable[None]]
"""Observer signature: ``callback(entity_name, record_id, operation)``."""


class StorageInterface(ABC):
    """Abstract interface for entity store operations.

    This interface provides a consistent, strongly-typed API for all storage
    operations, abstracting away backend-specific details. Every failure is
    raised as a StorageError subclass.
    """

    # Schema Management

    @abstractmethod
    def register_schema(self, schema: EntitySchema) -> None:
        """Register the schema of one entity kind.

        Raises:
            StorageConfigurationError: If the entity kind is already registered
        """
        pass

    @abstractmethod
    def register_relationship(self, relationship: Relationship) -> None:
        """Register a relationship between two registered entity kinds.

        Raises:
            RelationshipRegistrationError: If the declaration is inconsistent
        """
        pass

    @abstractmethod
    async def load_schemas(self, schema_dir: str | None = None) -> SchemaBundle:
        """Load schemas and relationships from YAML and register them all.

        Args:
            schema_dir: Directory of schema files, defaults to the bundled ones

        Returns:
            The loaded SchemaBundle

        Raises:
            StorageOperationError: If schema loading fails
        """
        pass

    # Record Operations (CRUD)

    @abstractmethod
    async def create(self, entity_name: str, fields: dict[str, Any]) -> Record:
        """Validate and store a new record.

        Raises:
            RecordValidationError: If any field is invalid (all failures listed)
            DanglingReferenceError: If a foreign key targets a missing record
            DuplicateValueError: If a unique field value is taken
            LockTimeoutError: If table locks could not be acquired in time
        """
        pass

    @abstractmethod
    async def update(
        self, entity_name: str, record_id: int, fields: dict[str, Any]
    ) -> Record:
        """Apply a partial update to an existing record.

        Raises:
            RecordNotFoundError: If the record does not exist
            RecordValidationError: If any supplied field is invalid
            DanglingReferenceError: If a foreign key targets a missing record
            DuplicateValueError: If a unique field value is taken
            LockTimeoutError: If table locks could not be acquired in time
        """
        pass

    @abstractmethod
    async def delete(self, entity_name: str, record_id: int) -> None:
        """Delete a record and apply the delete policy of every relationship.

        Raises:
            RecordNotFoundError: If the record does not exist
            ReferencedByChildrenError: If a restrict relationship blocks it
            CascadeCycleError: If cascading loops back on itself
            LockTimeoutError: If table locks could not be acquired in time
        """
        pass

    @abstractmethod
    async def get(self, entity_name: str, record_id: int) -> Record:
        """Retrieve a record by id.

        Raises:
            RecordNotFoundError: If the record does not exist
        """
        pass

    @abstractmethod
    async def find_by(
        self, entity_name: str, field_name: str, value: Any
    ) -> list[Record]:
        """Find records whose field equals ``value``, ordered by id."""
        pass

    @abstractmethod
    async def list_records(
        self,
        entity_name: str,
        filters: dict[str, Any] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Record]:
        """List records of one kind with optional equality filters."""
        pass

    # Associations (many-to-many)

    @abstractmethod
    async def add_association(
        self, relationship_name: str, source_id: int, target_id: int
    ) -> bool:
        """Link two records. Returns False when they were already linked.

        Raises:
            DanglingReferenceError: If either record does not exist
        """
        pass

    @abstractmethod
    async def remove_association(
        self, relationship_name: str, source_id: int, target_id: int
    ) -> bool:
        """Unlink two records. Returns False when they were not linked."""
        pass

    @abstractmethod
    async def get_associated(
        self, relationship_name: str, record_id: int, reverse: bool = False
    ) -> list[Record]:
        """Records linked to ``record_id``.

        With ``reverse`` the record is on the target side of the join and the
        sources are returned.
        """
        pass

    # Observers and monitoring

    @abstractmethod
    def on_change(self, callback: ChangeCallback) -> Callable[[], None]:
        """Subscribe to change events. Returns a function that unsubscribes."""
        pass

    @abstractmethod
    async def get_metrics(self) -> StoreMetrics:
        """Get store-wide counters."""
        pass

    @abstractmethod
    async def health_check(self) -> HealthCheckResult:
        """Check store health and return typed status."""
        pass
