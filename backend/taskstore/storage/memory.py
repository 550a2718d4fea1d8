"""In-memory entity store.

This module provides the InMemoryStorage backend that implements the
StorageInterface with per-kind record tables, secondary indexes, schema
validation, relationship enforcement and change notifications. Writers hold
table locks for their validate-then-write section; that section never awaits,
so concurrent readers always see either the old or the new record.
"""

from collections.abc import Callable
from datetime import UTC, datetime
import inspect
import time
from typing import Any

from ..core import (
    BUNDLED_SCHEMA_DIR,
    EntitySchema,
    FileSchemaLoader,
    Relationship,
    SchemaBundle,
    SchemaLoadError,
    SchemaValidationError,
    StorageOperationLogger,
    get_logger,
)
from ..validation import RecordValidator, coerce_value, normalize_value
from .exceptions import (
    DanglingReferenceError,
    DuplicateValueError,
    RecordNotFoundError,
    RecordValidationError,
    StorageConfigurationError,
    StorageOperationError,
    UnknownEntityError,
)
from .indexes import SecondaryIndex
from .interface import ChangeCallback, StorageInterface
from .locks import TableLockManager
from .models import (
    ChangeOperation,
    HealthCheckResult,
    HealthStatus,
    Record,
    StoreMetrics,
)
from .relationships import (
    DeleteRecord,
    NullifyField,
    RelationshipRegistry,
    UnlinkJoinEntry,
)

logger = get_logger(__name__)

PendingEvent = tuple[str, int, ChangeOperation]


def utc_now() -> datetime:
    return datetime.now(UTC)


class RecordTable:
    """Records of one entity kind plus their secondary indexes."""

    def __init__(self, schema: EntitySchema):
        self.schema = schema
        self.validator = RecordValidator(schema)
        self.records: dict[int, Record] = {}
        self.next_id = 1
        self.indexes: dict[str, SecondaryIndex] = {
            spec.name: SecondaryIndex(spec.name, unique=spec.unique)
            for spec in schema.indexed_fields
        }

    def allocate_id(self) -> int:
        record_id = self.next_id
        self.next_id += 1
        return record_id

    def ensure_index(self, field_name: str) -> None:
        if field_name in self.indexes:
            return
        index = SecondaryIndex(field_name)
        index.rebuild(
            (record.id, record.fields.get(field_name))
            for record in self.records.values()
        )
        self.indexes[field_name] = index

    def insert(self, record: Record) -> None:
        self.records[record.id] = record
        for name, index in self.indexes.items():
            index.add(record.fields.get(name), record.id)

    def remove(self, record_id: int) -> Record:
        record = self.records.pop(record_id)
        for name, index in self.indexes.items():
            index.remove(record.fields.get(name), record_id)
        return record

    def replace(self, record: Record) -> None:
        self.remove(record.id)
        self.insert(record)

    def ids_matching(self, field_name: str, value: Any) -> list[int]:
        index = self.indexes.get(field_name)
        if index is not None:
            return sorted(index.lookup(value))
        return sorted(
            record.id
            for record in self.records.values()
            if record.fields.get(field_name) == value
        )


class InMemoryStorage(StorageInterface):
    """In-memory entity store.

    Useful for:
    - Applications that keep their working set in process
    - Unit and integration testing
    - Validating record files from the CLI
    """

    def __init__(
        self,
        lock_timeout: float = 5.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize an empty store.

        Args:
            lock_timeout: Seconds to wait for table locks before failing
            clock: Source of timestamps and of "now" for date rules
        """
        self.tables: dict[str, RecordTable] = {}
        self.registry = RelationshipRegistry()
        self.locks = TableLockManager(timeout=lock_timeout)
        self.clock = clock or utc_now
        self.observer_failures = 0
        self._observers: list[ChangeCallback] = []

    # Schema Management

    def register_schema(self, schema: EntitySchema) -> None:
        """Register the schema of one entity kind."""
        if schema.entity_name in self.tables:
            raise StorageConfigurationError(
                f"Entity '{schema.entity_name}' is already registered"
            )
        self.tables[schema.entity_name] = RecordTable(schema)
        self.registry.register_schema(schema)
        logger.debug(
            "Registered schema",
            entity_name=schema.entity_name,
            fields=schema.field_names,
        )

    def register_relationship(self, relationship: Relationship) -> None:
        """Register a relationship and index its foreign key."""
        self.registry.register(relationship)
        if relationship.is_one_to_many and relationship.foreign_key:
            self.tables[relationship.source_entity].ensure_index(
                relationship.foreign_key
            )

    async def load_schemas(self, schema_dir: str | None = None) -> SchemaBundle:
        """Load schemas using the file schema loader and register them.

        Every schema and relationship is checked before the first one is
        registered, so a failed load leaves the store unchanged.
        """
        try:
            loader = FileSchemaLoader(schema_dir or BUNDLED_SCHEMA_DIR)
            bundle = await loader.load_schemas()
        except (SchemaLoadError, SchemaValidationError) as e:
            raise StorageOperationError(f"Failed to load schemas: {e}", e) from e

        already_registered = sorted(set(bundle.schemas) & set(self.tables))
        if already_registered:
            raise StorageConfigurationError(
                f"Entities already registered: {', '.join(already_registered)}"
            )
        self.registry.check_registration(
            bundle.schemas.values(), bundle.relationships
        )

        for schema in bundle.schemas.values():
            self.register_schema(schema)
        for relationship in bundle.relationships:
            self.register_relationship(relationship)

        logger.info(
            "Schemas loaded",
            source=bundle.source,
            schema_count=bundle.schema_count,
            relationship_count=len(bundle.relationships),
        )
        return bundle

    def get_schema(self, entity_name: str) -> EntitySchema:
        return self._table(entity_name).schema

    @property
    def schemas(self) -> dict[str, EntitySchema]:
        return {name: table.schema for name, table in self.tables.items()}

    def _table(self, entity_name: str) -> RecordTable:
        table = self.tables.get(entity_name)
        if table is None:
            raise UnknownEntityError(entity_name)
        return table

    # Record Operations

    async def create(self, entity_name: str, fields: dict[str, Any]) -> Record:
        """Validate and store a new record."""
        table = self._table(entity_name)
        lock_scope = {entity_name} | self.registry.parent_entities(entity_name)

        with StorageOperationLogger(logger, "create", entity_name=entity_name):
            async with self.locks.acquire(lock_scope):
                now = self.clock()
                result = table.validator.validate(fields, now=now)
                if not result.is_valid or result.values is None:
                    raise RecordValidationError(entity_name, result.errors)

                values = result.values
                self.registry.check_foreign_keys(entity_name, values, self)
                self._check_unique(table, values, exclude_id=None)

                record = Record(
                    id=table.allocate_id(),
                    entity_name=entity_name,
                    fields=values,
                    created_at=now,
                    updated_at=now,
                )
                table.insert(record)

        await self._emit([(entity_name, record.id, ChangeOperation.CREATE)])
        return record.model_copy(deep=True)

    async def update(
        self, entity_name: str, record_id: int, fields: dict[str, Any]
    ) -> Record:
        """Apply a partial update to an existing record."""
        table = self._table(entity_name)
        lock_scope = {entity_name} | self.registry.parent_entities(entity_name)

        with StorageOperationLogger(
            logger, "update", entity_name=entity_name, record_id=record_id
        ):
            async with self.locks.acquire(lock_scope):
                existing = table.records.get(record_id)
                if existing is None:
                    raise RecordNotFoundError(entity_name, record_id)

                now = self.clock()
                result = table.validator.validate(
                    fields, now=now, existing=existing.fields
                )
                if not result.is_valid or result.values is None:
                    raise RecordValidationError(entity_name, result.errors)

                values = result.values
                self.registry.check_foreign_keys(entity_name, values, self)
                self._check_unique(table, values, exclude_id=record_id)

                record = existing.model_copy(
                    update={"fields": values, "updated_at": now}
                )
                table.replace(record)

        await self._emit([(entity_name, record_id, ChangeOperation.UPDATE)])
        return record.model_copy(deep=True)

    async def delete(self, entity_name: str, record_id: int) -> None:
        """Delete a record and apply every relationship's delete policy."""
        self._table(entity_name)
        lock_scope = self.registry.affected_entities(entity_name)
        events: list[PendingEvent] = []

        with StorageOperationLogger(
            logger, "delete", entity_name=entity_name, record_id=record_id
        ) as op_logger:
            async with self.locks.acquire(lock_scope):
                if record_id not in self.tables[entity_name].records:
                    raise RecordNotFoundError(entity_name, record_id)

                plan = self.registry.cascade_on_delete(entity_name, record_id, self)
                op_logger.log_progress("Delete planned", steps=len(plan))
                events = self._apply_plan(plan)

        await self._emit(events)

    def _apply_plan(
        self, plan: list[DeleteRecord | NullifyField | UnlinkJoinEntry]
    ) -> list[PendingEvent]:
        events: list[PendingEvent] = []
        now = self.clock()

        for step in plan:
            if isinstance(step, UnlinkJoinEntry):
                self.registry.join_tables[step.join_table].remove(
                    step.source_id, step.target_id
                )
            elif isinstance(step, NullifyField):
                table = self.tables[step.entity_name]
                current = table.records[step.record_id]
                table.replace(
                    current.model_copy(
                        update={
                            "fields": {**current.fields, step.field: None},
                            "updated_at": now,
                        }
                    )
                )
                events.append(
                    (step.entity_name, step.record_id, ChangeOperation.UPDATE)
                )
            else:
                self.tables[step.entity_name].remove(step.record_id)
                events.append(
                    (step.entity_name, step.record_id, ChangeOperation.DELETE)
                )

        return events

    async def get(self, entity_name: str, record_id: int) -> Record:
        """Retrieve a record by id."""
        record = self._table(entity_name).records.get(record_id)
        if record is None:
            raise RecordNotFoundError(entity_name, record_id)
        return record.model_copy(deep=True)

    async def find_by(
        self, entity_name: str, field_name: str, value: Any
    ) -> list[Record]:
        """Find records by field value using an index when one exists."""
        table = self._table(entity_name)

        if field_name == table.schema.primary_key_field:
            record = table.records.get(value)
            return [record.model_copy(deep=True)] if record else []

        spec = table.schema.get_field(field_name)
        if spec is None:
            raise StorageOperationError(
                f"Entity '{entity_name}' has no field '{field_name}'"
            )

        lookup_value, _ = coerce_value(normalize_value(value, spec), spec)
        return [
            table.records[record_id].model_copy(deep=True)
            for record_id in table.ids_matching(field_name, lookup_value)
        ]

    async def list_records(
        self,
        entity_name: str,
        filters: dict[str, Any] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Record]:
        """List records with basic filtering and pagination."""
        records = sorted(
            self._table(entity_name).records.values(), key=lambda r: r.id
        )

        if filters:
            records = [
                record
                for record in records
                if all(record.fields.get(k) == v for k, v in filters.items())
            ]

        return [record.model_copy(deep=True) for record in records[offset : offset + limit]]

    # RecordLookup protocol used by the relationship registry

    def record_exists(self, entity_name: str, record_id: int) -> bool:
        table = self.tables.get(entity_name)
        return table is not None and record_id in table.records

    def referencing_ids(
        self, entity_name: str, field_name: str, value: Any
    ) -> list[int]:
        return self._table(entity_name).ids_matching(field_name, value)

    def _check_unique(
        self, table: RecordTable, values: dict[str, Any], exclude_id: int | None
    ) -> None:
        for spec in table.schema.unique_fields:
            value = values.get(spec.name)
            if table.indexes[spec.name].conflicts(value, exclude_id):
                raise DuplicateValueError(table.schema.entity_name, spec.name, value)

    # Associations

    def _many_to_many(self, relationship_name: str) -> Relationship:
        relationship = self.registry.get(relationship_name)
        if relationship is None or not relationship.is_many_to_many:
            raise StorageOperationError(
                f"No many_to_many relationship named '{relationship_name}'"
            )
        return relationship

    async def add_association(
        self, relationship_name: str, source_id: int, target_id: int
    ) -> bool:
        """Link two records; linking an existing pair is a no-op."""
        relationship = self._many_to_many(relationship_name)
        scope = {relationship.source_entity, relationship.target_entity}

        async with self.locks.acquire(scope):
            if not self.record_exists(relationship.source_entity, source_id):
                raise DanglingReferenceError(
                    relationship_name,
                    "source_id",
                    source_id,
                    relationship.source_entity,
                )
            if not self.record_exists(relationship.target_entity, target_id):
                raise DanglingReferenceError(
                    relationship_name,
                    "target_id",
                    target_id,
                    relationship.target_entity,
                )
            added = self.registry.join_table_for(relationship_name).add(
                source_id, target_id
            )

        logger.debug(
            "Association added" if added else "Association already present",
            relationship=relationship_name,
            source_id=source_id,
            target_id=target_id,
        )
        return added

    async def remove_association(
        self, relationship_name: str, source_id: int, target_id: int
    ) -> bool:
        """Unlink two records."""
        relationship = self._many_to_many(relationship_name)
        scope = {relationship.source_entity, relationship.target_entity}

        async with self.locks.acquire(scope):
            return self.registry.join_table_for(relationship_name).remove(
                source_id, target_id
            )

    async def get_associated(
        self, relationship_name: str, record_id: int, reverse: bool = False
    ) -> list[Record]:
        """Records linked to ``record_id`` through a join table."""
        relationship = self._many_to_many(relationship_name)
        join_table = self.registry.join_table_for(relationship_name)

        if reverse:
            other_entity = relationship.source_entity
            ids = join_table.sources_of(record_id)
        else:
            other_entity = relationship.target_entity
            ids = join_table.targets_of(record_id)

        records = self.tables[other_entity].records
        return [records[i].model_copy(deep=True) for i in ids if i in records]

    # Observers

    def on_change(self, callback: ChangeCallback) -> Callable[[], None]:
        """Subscribe to change events."""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    async def _emit(self, events: list[PendingEvent]) -> None:
        for entity_name, record_id, operation in events:
            for callback in list(self._observers):
                try:
                    outcome = callback(entity_name, record_id, operation)
                    if inspect.isawaitable(outcome):
                        await outcome
                except Exception:
                    self.observer_failures += 1
                    logger.exception(
                        "Change observer failed",
                        entity_name=entity_name,
                        record_id=record_id,
                        operation=operation.value,
                        observer=getattr(callback, "__qualname__", repr(callback)),
                    )

    # Monitoring

    async def get_metrics(self) -> StoreMetrics:
        """Get store-wide counters."""
        return StoreMetrics(
            record_counts={
                name: len(table.records) for name, table in self.tables.items()
            },
            association_count=self.registry.association_count,
            observer_failures=self.observer_failures,
            last_updated=self.clock(),
        )

    async def health_check(self) -> HealthCheckResult:
        """In-process store is healthy once it has schemas."""
        started = time.perf_counter()
        status = HealthStatus.HEALTHY if self.tables else HealthStatus.DEGRADED
        return HealthCheckResult(
            status=status,
            response_time_ms=round((time.perf_counter() - started) * 1000, 3),
            backend_version="memory-1.0.0",
            additional_info={
                "records_stored": sum(len(t.records) for t in self.tables.values()),
                "schema_types": len(self.tables),
                "relationships": len(self.registry.relationships),
            },
        )
