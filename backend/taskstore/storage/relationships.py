"""Relationship registry enforcing referential integrity between entity kinds.

This module provides a schema-driven approach to relationship management that:
1. Validates relationship declarations against registered schemas
2. Checks that foreign keys point at existing parent records
3. Stores many-to-many membership in explicit join tables
4. Plans the side effects of a delete (cascade, restrict, set null) without
   mutating anything, so a failed plan leaves every record untouched
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from ..core import (
    DeletePolicy,
    EntitySchema,
    FieldKind,
    Relationship,
    get_logger,
)
from .exceptions import (
    CascadeCycleError,
    DanglingReferenceError,
    ReferencedByChildrenError,
    RelationshipRegistrationError,
)

logger = get_logger(__name__)


class RecordLookup(Protocol):
    """Read access the registry needs from the store holding the records."""

    def record_exists(self, entity_name: str, record_id: int) -> bool: ...

    def referencing_ids(
        self, entity_name: str, field_name: str, value: Any
    ) -> list[int]: ...


@dataclass(frozen=True)
class DeleteRecord:
    """Remove a record."""

    entity_name: str
    record_id: int


@dataclass(frozen=True)
class NullifyField:
    """Clear a foreign key on a child whose parent is being deleted."""

    entity_name: str
    record_id: int
    field: str


@dataclass(frozen=True)
class UnlinkJoinEntry:
    """Drop one many-to-many pair."""

    join_table: str
    source_id: int
    target_id: int


DeletePlanStep = DeleteRecord | NullifyField | UnlinkJoinEntry


class JoinTable:
    """Unique ``(source_id, target_id)`` pairs of a many-to-many relationship."""

    def __init__(self, name: str, source_entity: str, target_entity: str):
        self.name = name
        self.source_entity = source_entity
        self.target_entity = target_entity
        self._by_source: dict[int, set[int]] = {}
        self._by_target: dict[int, set[int]] = {}

    def add(self, source_id: int, target_id: int) -> bool:
        """Insert a pair. Returns False when the pair already exists."""
        if (source_id, target_id) in self:
            return False
        self._by_source.setdefault(source_id, set()).add(target_id)
        self._by_target.setdefault(target_id, set()).add(source_id)
        return True

    def remove(self, source_id: int, target_id: int) -> bool:
        """Remove a pair. Returns False when the pair did not exist."""
        if (source_id, target_id) not in self:
            return False
        self._discard(self._by_source, source_id, target_id)
        self._discard(self._by_target, target_id, source_id)
        return True

    @staticmethod
    def _discard(mapping: dict[int, set[int]], key: int, value: int) -> None:
        values = mapping[key]
        values.discard(value)
        if not values:
            del mapping[key]

    def targets_of(self, source_id: int) -> list[int]:
        return sorted(self._by_source.get(source_id, ()))

    def sources_of(self, target_id: int) -> list[int]:
        return sorted(self._by_target.get(target_id, ()))

    def pairs_for_source(self, source_id: int) -> list[tuple[int, int]]:
        return [(source_id, target) for target in self.targets_of(source_id)]

    def pairs_for_target(self, target_id: int) -> list[tuple[int, int]]:
        return [(source, target_id) for source in self.sources_of(target_id)]

    def __contains__(self, pair: object) -> bool:
        if not isinstance(pair, tuple) or len(pair) != 2:
            return False
        source_id, target_id = pair
        return target_id in self._by_source.get(source_id, ())

    def __len__(self) -> int:
        return sum(len(targets) for targets in self._by_source.values())


class RelationshipRegistry:
    """Declares relationships and enforces them against stored records."""

    def __init__(self) -> None:
        self.schemas: dict[str, EntitySchema] = {}
        self.relationships: dict[str, Relationship] = {}
        self.join_tables: dict[str, JoinTable] = {}

    def register_schema(self, schema: EntitySchema) -> None:
        self.schemas[schema.entity_name] = schema

    def register(self, relationship: Relationship) -> None:
        """Register a relationship after checking it against the schemas.

        Raises:
            RelationshipRegistrationError: If the declaration is inconsistent
        """
        self._ensure_registrable(relationship)
        self._add(relationship)

        logger.debug(
            "Registered relationship",
            relationship=relationship.name,
            kind=relationship.kind.value,
            source=relationship.source_entity,
            target=relationship.target_entity,
            on_delete=relationship.on_delete.value,
        )

    def check_registration(
        self, schemas: Iterable[EntitySchema], relationships: Iterable[Relationship]
    ) -> None:
        """Check that schemas and relationships can be registered together.

        Runs the same checks as ``register`` against a scratch copy of the
        registry, so nothing is registered here.

        Raises:
            RelationshipRegistrationError: If any relationship is inconsistent
        """
        staging = RelationshipRegistry()
        staging.schemas = dict(self.schemas)
        staging.relationships = dict(self.relationships)
        staging.join_tables = dict(self.join_tables)

        for schema in schemas:
            staging.register_schema(schema)
        for relationship in relationships:
            staging._ensure_registrable(relationship)
            staging._add(relationship)

    def _ensure_registrable(self, relationship: Relationship) -> None:
        errors = self._registration_errors(relationship)
        if errors:
            raise RelationshipRegistrationError(
                f"Cannot register relationship '{relationship.name}': "
                + "; ".join(errors)
            )

    def _add(self, relationship: Relationship) -> None:
        self.relationships[relationship.name] = relationship
        if relationship.is_many_to_many and relationship.join_table:
            self.join_tables[relationship.join_table] = JoinTable(
                relationship.join_table,
                relationship.source_entity,
                relationship.target_entity,
            )

    def _registration_errors(self, relationship: Relationship) -> list[str]:
        errors = []

        if not relationship.name:
            errors.append("relationship name must not be empty")
        elif relationship.name in self.relationships:
            errors.append("a relationship with this name already exists")

        for entity_name in (relationship.source_entity, relationship.target_entity):
            if entity_name not in self.schemas:
                errors.append(f"entity '{entity_name}' has no registered schema")
        if errors:
            return errors

        if relationship.is_one_to_many:
            if relationship.join_table:
                errors.append("one_to_many relationships cannot use a join table")
            source = self.schemas[relationship.source_entity]
            fk_field = source.get_field(relationship.foreign_key or "")
            if fk_field is None:
                errors.append(
                    f"foreign key '{relationship.foreign_key}' is not a field of "
                    f"'{relationship.source_entity}'"
                )
            else:
                if fk_field.kind != FieldKind.INT:
                    errors.append(f"foreign key '{fk_field.name}' must be an int field")
                if (
                    relationship.on_delete == DeletePolicy.SET_NULL
                    and not fk_field.nullable
                ):
                    errors.append(
                        f"set_null requires '{fk_field.name}' to be nullable"
                    )
        else:
            if not relationship.join_table:
                errors.append("many_to_many relationships need a join table")
            elif relationship.join_table in self.join_tables:
                errors.append(
                    f"join table '{relationship.join_table}' is already in use"
                )
            if relationship.foreign_key:
                errors.append("many_to_many relationships cannot use a foreign key")
            if relationship.on_delete == DeletePolicy.SET_NULL:
                errors.append("set_null is not supported for many_to_many")

        return errors

    # Queries

    def get(self, name: str) -> Relationship | None:
        return self.relationships.get(name)

    def relationships_to(self, entity_name: str) -> list[Relationship]:
        """Relationships whose target (parent side) is ``entity_name``."""
        return sorted(
            (r for r in self.relationships.values() if r.target_entity == entity_name),
            key=lambda r: r.name,
        )

    def relationships_from(self, entity_name: str) -> list[Relationship]:
        """Relationships whose source (child side) is ``entity_name``."""
        return sorted(
            (r for r in self.relationships.values() if r.source_entity == entity_name),
            key=lambda r: r.name,
        )

    def foreign_keys(self, entity_name: str) -> list[Relationship]:
        return [r for r in self.relationships_from(entity_name) if r.is_one_to_many]

    def parent_entities(self, entity_name: str) -> set[str]:
        """Entity kinds referenced by the foreign keys of ``entity_name``."""
        return {r.target_entity for r in self.foreign_keys(entity_name)}

    def join_table_for(self, relationship_name: str) -> JoinTable:
        relationship = self.relationships.get(relationship_name)
        if relationship is None or not relationship.is_many_to_many:
            raise KeyError(
                f"No many_to_many relationship named '{relationship_name}'"
            )
        return self.join_tables[relationship.join_table or ""]

    @property
    def association_count(self) -> int:
        return sum(len(table) for table in self.join_tables.values())

    # Foreign keys

    def check_foreign_key(
        self, entity_name: str, field_name: str, value: Any, lookup: RecordLookup
    ) -> None:
        """Check that a foreign key value points at an existing parent.

        Null values pass; nullability is enforced by schema validation.

        Raises:
            DanglingReferenceError: If the referenced parent does not exist
        """
        for relationship in self.foreign_keys(entity_name):
            if relationship.foreign_key != field_name or value is None:
                continue
            if not lookup.record_exists(relationship.target_entity, value):
                raise DanglingReferenceError(
                    entity_name, field_name, value, relationship.target_entity
                )

    def check_foreign_keys(
        self, entity_name: str, values: dict[str, Any], lookup: RecordLookup
    ) -> None:
        """Check every foreign key of a record, stopping at the first failure."""
        for relationship in self.foreign_keys(entity_name):
            field_name = relationship.foreign_key or ""
            self.check_foreign_key(
                entity_name, field_name, values.get(field_name), lookup
            )

    # Delete planning

    def affected_entities(self, entity_name: str) -> set[str]:
        """Every entity kind a delete of ``entity_name`` may read or modify."""
        affected = {entity_name}
        expanded: set[str] = set()
        pending = [entity_name]

        while pending:
            current = pending.pop()
            if current in expanded:
                continue
            expanded.add(current)

            for relationship in self.relationships_to(current):
                affected.add(relationship.source_entity)
                if (
                    relationship.is_one_to_many
                    and relationship.on_delete == DeletePolicy.CASCADE
                ):
                    pending.append(relationship.source_entity)
            for relationship in self.relationships_from(current):
                if relationship.is_many_to_many:
                    affected.add(relationship.target_entity)

        return affected

    def cascade_on_delete(
        self, entity_name: str, record_id: int, lookup: RecordLookup
    ) -> list[DeletePlanStep]:
        """Plan the side effects of deleting one record.

        Children are visited depth-first and appear in the plan before their
        parents. Nothing is mutated.

        Raises:
            ReferencedByChildrenError: If a restrict relationship has children
            CascadeCycleError: If the cascade reaches a record already on the
                current cascade path
        """
        steps: list[DeletePlanStep] = []
        planned: set[tuple[str, int]] = set()
        self._plan_delete(entity_name, record_id, lookup, [], planned, steps)

        # A child both nullified and deleted only needs the delete
        deleted = {
            (step.entity_name, step.record_id)
            for step in steps
            if isinstance(step, DeleteRecord)
        }
        plan: list[DeletePlanStep] = []
        seen: set[DeletePlanStep] = set()
        for step in steps:
            if step in seen:
                continue
            if (
                isinstance(step, NullifyField)
                and (step.entity_name, step.record_id) in deleted
            ):
                continue
            seen.add(step)
            plan.append(step)
        return plan

    def _plan_delete(
        self,
        entity_name: str,
        record_id: int,
        lookup: RecordLookup,
        path: list[tuple[str, int]],
        planned: set[tuple[str, int]],
        steps: list[DeletePlanStep],
    ) -> None:
        node = (entity_name, record_id)
        if node in path:
            raise CascadeCycleError([*path, node])
        if node in planned:
            return

        path.append(node)

        for relationship in self.relationships_to(entity_name):
            if relationship.is_one_to_many:
                self._plan_children(
                    relationship, record_id, lookup, path, planned, steps
                )
            else:
                table = self.join_tables[relationship.join_table or ""]
                pairs = table.pairs_for_target(record_id)
                if pairs and relationship.on_delete == DeletePolicy.RESTRICT:
                    raise ReferencedByChildrenError(
                        entity_name, record_id, relationship.source_entity, len(pairs)
                    )
                steps.extend(
                    UnlinkJoinEntry(table.name, source, target)
                    for source, target in pairs
                )

        for relationship in self.relationships_from(entity_name):
            if relationship.is_many_to_many:
                table = self.join_tables[relationship.join_table or ""]
                steps.extend(
                    UnlinkJoinEntry(table.name, source, target)
                    for source, target in table.pairs_for_source(record_id)
                )

        path.pop()
        planned.add(node)
        steps.append(DeleteRecord(entity_name, record_id))

    def _plan_children(
        self,
        relationship: Relationship,
        parent_id: int,
        lookup: RecordLookup,
        path: list[tuple[str, int]],
        planned: set[tuple[str, int]],
        steps: list[DeletePlanStep],
    ) -> None:
        child_entity = relationship.source_entity
        field_name = relationship.foreign_key or ""
        children = [
            child_id
            for child_id in lookup.referencing_ids(child_entity, field_name, parent_id)
            if (child_entity, child_id) not in planned
        ]
        if not children:
            return

        if relationship.on_delete == DeletePolicy.RESTRICT:
            raise ReferencedByChildrenError(
                relationship.target_entity, parent_id, child_entity, len(children)
            )

        if relationship.on_delete == DeletePolicy.SET_NULL:
            steps.extend(
                NullifyField(child_entity, child_id, field_name)
                for child_id in children
            )
            return

        for child_id in children:
            self._plan_delete(child_entity, child_id, lookup, path, planned, steps)
