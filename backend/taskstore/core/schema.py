"""Core schema data structures for entity kinds and their relationships.

This module defines the immutable structures that describe one entity kind
(its fields and validation rules) and the relationships between kinds.
Schemas are either declared in Python or loaded from YAML files by the
schema loader.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .rules import ComparisonRule, EnumRule, LengthRule, Rule


class FieldKind(str, Enum):
    """Scalar kinds a field can hold."""

    STRING = "string"
    INT = "int"
    DATE = "date"
    ENUM = "enum"


class RelationshipKind(str, Enum):
    """Supported relationship cardinalities."""

    ONE_TO_MANY = "one_to_many"
    MANY_TO_MANY = "many_to_many"


class DeletePolicy(str, Enum):
    """What happens to dependents when a referenced record is deleted."""

    CASCADE = "cascade"
    RESTRICT = "restrict"
    SET_NULL = "set_null"


@dataclass(frozen=True)
class FieldSpec:
    """Definition of a single field.

    ``default`` may be a plain value or a zero-argument callable evaluated
    when a record is created without the field. ``normalizers`` name the
    transforms applied to the raw value before any rule runs.
    """

    name: str
    kind: FieldKind = FieldKind.STRING
    nullable: bool = False
    default: Any = None
    unique: bool = False
    indexed: bool = False
    rules: tuple[Rule, ...] = ()
    normalizers: tuple[str, ...] = ()
    allowed_values: tuple[str, ...] = ()
    description: str = ""

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @property
    def is_indexed(self) -> bool:
        """Whether the store keeps a secondary index for this field."""
        return self.unique or self.indexed

    def resolve_default(self) -> Any:
        if callable(self.default):
            return self.default()
        return self.default

    def effective_rules(self) -> tuple[Rule, ...]:
        """Rules in evaluation order, enum membership first for enum fields."""
        if self.kind == FieldKind.ENUM and self.allowed_values:
            return (EnumRule(values=self.allowed_values), *self.rules)
        return self.rules


@dataclass(frozen=True)
class EntitySchema:
    """Complete schema of one entity kind."""

    entity_name: str
    fields: tuple[FieldSpec, ...]
    primary_key_field: str = "id"
    description: str = ""

    @classmethod
    def from_fields(
        cls,
        entity_name: str,
        fields: list[FieldSpec] | tuple[FieldSpec, ...],
        primary_key_field: str = "id",
        description: str = "",
    ) -> "EntitySchema":
        """Build a schema and check its invariants.

        Raises:
            SchemaValidationError: If the name is empty, field names repeat,
                a field reuses the primary key name or carries a rule its
                kind cannot satisfy
        """
        errors: list[str] = []

        if not entity_name:
            errors.append("Entity name must not be empty")

        seen: set[str] = set()
        for spec in fields:
            if spec.name in seen:
                errors.append(
                    f"Entity '{entity_name}' has duplicate field name '{spec.name}'"
                )
            seen.add(spec.name)
            if spec.name == primary_key_field:
                errors.append(
                    f"Entity '{entity_name}' field '{spec.name}' clashes with "
                    "the primary key"
                )
            if spec.kind == FieldKind.ENUM and not spec.allowed_values:
                errors.append(
                    f"Entity '{entity_name}' enum field '{spec.name}' has no "
                    "allowed values"
                )
            errors.extend(_rule_kind_errors(entity_name, spec))

        if errors:
            raise SchemaValidationError(
                f"Invalid schema for entity '{entity_name}'", errors
            )

        return cls(
            entity_name=entity_name,
            fields=tuple(fields),
            primary_key_field=primary_key_field,
            description=description,
        )

    @property
    def field_names(self) -> list[str]:
        return [spec.name for spec in self.fields]

    def get_field(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    @property
    def unique_fields(self) -> list[FieldSpec]:
        return [spec for spec in self.fields if spec.unique]

    @property
    def indexed_fields(self) -> list[FieldSpec]:
        return [spec for spec in self.fields if spec.is_indexed]


TEXT_KINDS = (FieldKind.STRING, FieldKind.ENUM)


def _rule_kind_errors(entity_name: str, spec: FieldSpec) -> list[str]:
    """Check that every rule of a field can run on values of its kind."""
    errors = []
    where = f"Entity '{entity_name}' field '{spec.name}'"

    for rule in spec.rules:
        if isinstance(rule, LengthRule) and spec.kind not in TEXT_KINDS:
            errors.append(
                f"{where} of kind {spec.kind.value} cannot use rule '{rule.name}'"
            )
        elif isinstance(rule, ComparisonRule):
            reference = rule.reference
            if spec.kind == FieldKind.INT:
                valid = isinstance(reference, int) and not isinstance(reference, bool)
            elif spec.kind == FieldKind.DATE:
                valid = rule.is_relative or isinstance(reference, datetime)
            else:
                valid = False
            if not valid:
                errors.append(
                    f"{where} of kind {spec.kind.value} cannot be compared "
                    f"with {reference!r}"
                )

    return errors


@dataclass(frozen=True)
class Relationship:
    """Referential relationship between two entity kinds.

    For ``one_to_many`` the source entity is the child carrying
    ``foreign_key`` and the target entity is the referenced parent. For
    ``many_to_many`` the pairs live in ``join_table`` keyed by
    ``(source_id, target_id)``.
    """

    name: str
    kind: RelationshipKind
    source_entity: str
    target_entity: str
    foreign_key: str | None = None
    join_table: str | None = None
    on_delete: DeletePolicy = DeletePolicy.CASCADE
    description: str = ""

    @property
    def is_one_to_many(self) -> bool:
        return self.kind == RelationshipKind.ONE_TO_MANY

    @property
    def is_many_to_many(self) -> bool:
        return self.kind == RelationshipKind.MANY_TO_MANY


@dataclass
class SchemaBundle:
    """Schemas and relationships loaded together."""

    schemas: dict[str, EntitySchema]
    relationships: list[Relationship]
    loaded_at: datetime
    source: str = ""
    errors: list[str] = field(default_factory=list)

    @property
    def schema_count(self) -> int:
        return len(self.schemas)


class SchemaValidationError(Exception):
    """Raised when schema validation fails."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class SchemaLoadError(Exception):
    """Raised when schema loading fails."""

    pass
