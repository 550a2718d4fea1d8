"""Schema loader implementation for entity schemas declared in YAML files.

Each YAML file describes one entity kind: its fields with their rules and
the relationships in which it is the source (the child carrying the foreign
key, or the owning side of a many-to-many join). The loader turns the files
into EntitySchema and Relationship objects and checks their consistency
before anything is registered with a store.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml

from ..validation import validators
from .rules import ComparisonRule, LengthRule, PatternRule, Rule
from .schema import (
    TEXT_KINDS,
    DeletePolicy,
    EntitySchema,
    FieldKind,
    FieldSpec,
    Relationship,
    RelationshipKind,
    SchemaBundle,
    SchemaLoadError,
    SchemaValidationError,
)

BUNDLED_SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"


class SchemaLoader(ABC):
    """Interface for loading and managing schemas."""

    @abstractmethod
    async def load_schemas(self, schema_dir: str | None = None) -> SchemaBundle:
        """Load all schemas from directory."""
        pass

    @abstractmethod
    async def reload_schemas(self) -> SchemaBundle:
        """Reload schemas from disk."""
        pass

    @abstractmethod
    def validate_schema_consistency(
        self, schemas: dict[str, EntitySchema], relationships: list[Relationship]
    ) -> list[str]:
        """Validate schema consistency and return errors."""
        pass

    @abstractmethod
    def get_entity_schema(self, entity_name: str) -> EntitySchema | None:
        """Get schema for specific entity kind."""
        pass


class FileSchemaLoader(SchemaLoader):
    """File-based schema loader implementation.

    Loads every ``*.yaml`` file in a directory. Files without an
    ``entity_name`` key are ignored.
    """

    def __init__(self, schema_dir: str | Path = BUNDLED_SCHEMA_DIR):
        """Initialize with schema directory path.

        Args:
            schema_dir: Path to directory containing schema YAML files
        """
        self.schema_dir = Path(schema_dir)
        self.bundle: SchemaBundle | None = None

    async def load_schemas(self, schema_dir: str | None = None) -> SchemaBundle:
        """Load all schema files from directory.

        Args:
            schema_dir: Optional override for schema directory

        Returns:
            SchemaBundle with every entity schema and relationship

        Raises:
            SchemaLoadError: If a file cannot be read or parsed
            SchemaValidationError: If the schemas are inconsistent
        """
        schema_path = Path(schema_dir) if schema_dir else self.schema_dir

        if not schema_path.exists():
            raise SchemaLoadError(f"Schema directory does not exist: {schema_path}")

        schemas: dict[str, EntitySchema] = {}
        relationships: list[Relationship] = []

        for schema_file in sorted(schema_path.glob("*.yaml")):
            try:
                with schema_file.open(encoding="utf-8") as f:
                    schema_data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise SchemaLoadError(
                    f"Failed to load schema '{schema_file.name}': {e}"
                ) from e

            if not isinstance(schema_data, dict) or "entity_name" not in schema_data:
                continue

            try:
                schema = self.parse_entity_schema(schema_data)
                relationships.extend(
                    self.parse_relationships(
                        schema.entity_name, schema_data.get("relationships") or {}
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise SchemaLoadError(
                    f"Invalid schema '{schema_file.name}': {e}"
                ) from e

            if schema.entity_name in schemas:
                raise SchemaLoadError(
                    f"Entity '{schema.entity_name}' is declared more than once"
                )
            schemas[schema.entity_name] = schema

        errors = self.validate_schema_consistency(schemas, relationships)
        if errors:
            raise SchemaValidationError(f"Schema validation failed: {errors}", errors)

        self.schema_dir = schema_path
        self.bundle = SchemaBundle(
            schemas=schemas,
            relationships=relationships,
            loaded_at=datetime.now(UTC),
            source=str(schema_path),
        )
        return self.bundle

    async def reload_schemas(self) -> SchemaBundle:
        """Reload schemas from disk."""
        return await self.load_schemas()

    def validate_schema_consistency(
        self, schemas: dict[str, EntitySchema], relationships: list[Relationship]
    ) -> list[str]:
        """Validate schema consistency and return errors.

        Args:
            schemas: Schemas keyed by entity name
            relationships: Relationships declared across all schemas

        Returns:
            List of validation error messages
        """
        errors = []
        names: set[str] = set()

        for relationship in relationships:
            if relationship.name in names:
                errors.append(f"Relationship '{relationship.name}' declared twice")
            names.add(relationship.name)

            if relationship.target_entity not in schemas:
                errors.append(
                    f"Entity '{relationship.source_entity}' has relationship "
                    f"'{relationship.name}' targeting unknown entity "
                    f"'{relationship.target_entity}'"
                )
                continue

            if relationship.is_one_to_many:
                source = schemas[relationship.source_entity]
                fk_field = source.get_field(relationship.foreign_key or "")
                if fk_field is None:
                    errors.append(
                        f"Relationship '{relationship.name}' uses foreign key "
                        f"'{relationship.foreign_key}' which is not a field of "
                        f"'{relationship.source_entity}'"
                    )
                elif (
                    relationship.on_delete == DeletePolicy.SET_NULL
                    and not fk_field.nullable
                ):
                    errors.append(
                        f"Relationship '{relationship.name}' uses set_null but "
                        f"'{relationship.source_entity}.{fk_field.name}' is not "
                        "nullable"
                    )
            elif not relationship.join_table:
                errors.append(
                    f"Relationship '{relationship.name}' is many_to_many but has "
                    "no join_table"
                )

        return errors

    def get_entity_schema(self, entity_name: str) -> EntitySchema | None:
        """Get schema for specific entity kind."""
        if self.bundle is None:
            return None
        return self.bundle.schemas.get(entity_name)

    def parse_entity_schema(self, schema_data: dict[str, Any]) -> EntitySchema:
        """Convert schema data dictionary to EntitySchema object."""
        entity_name = schema_data["entity_name"]
        fields = [
            self._parse_field(name, config or {})
            for name, config in (schema_data.get("fields") or {}).items()
        ]
        return EntitySchema.from_fields(
            entity_name,
            fields,
            primary_key_field=schema_data.get("primary_key", "id"),
            description=schema_data.get("description", ""),
        )

    def _parse_field(self, name: str, config: dict[str, Any]) -> FieldSpec:
        kind = FieldKind(config.get("kind", "string"))

        rules: list[Rule] = []
        if "min_length" in config or "max_length" in config:
            rules.append(
                LengthRule(min=config.get("min_length"), max=config.get("max_length"))
            )
        if "pattern" in config:
            rules.append(
                PatternRule(
                    pattern=config["pattern"], message=config.get("pattern_message")
                )
            )
        for rule_config in config.get("rules") or []:
            rules.append(self._parse_rule(name, kind, rule_config))

        normalizers = tuple(config.get("normalize") or ())
        for normalizer in normalizers:
            if normalizer not in validators.NORMALIZERS:
                raise ValueError(
                    f"Field '{name}' uses unknown normalizer '{normalizer}'"
                )

        return FieldSpec(
            name=name,
            kind=kind,
            nullable=config.get("nullable", False),
            default=config.get("default"),
            unique=config.get("unique", False),
            indexed=config.get("indexed", False),
            rules=tuple(rules),
            normalizers=normalizers,
            allowed_values=tuple(config.get("allowed_values") or ()),
            description=config.get("description", ""),
        )

    def _parse_rule(
        self, field_name: str, kind: FieldKind, rule_config: dict[str, Any]
    ) -> Rule:
        message = rule_config.get("message")

        if "predicate" in rule_config:
            predicate = rule_config["predicate"]
            if kind not in TEXT_KINDS:
                raise ValueError(
                    f"Field '{field_name}' of kind {kind.value} cannot use "
                    f"predicate '{predicate}'"
                )
            try:
                return validators.NamedPredicates.build_rule(predicate, message)
            except KeyError as e:
                raise ValueError(str(e)) from e

        if "compare" in rule_config:
            return ComparisonRule(
                name=rule_config.get("name", "comparison"),
                operator=rule_config["compare"],
                reference=rule_config.get("reference", "now"),
                message=message,
            )

        raise ValueError(f"Unsupported rule definition: {rule_config}")

    def parse_relationships(
        self, entity_name: str, relationships_data: dict[str, Any]
    ) -> list[Relationship]:
        """Parse the relationships declared by one entity schema."""
        relationships = []

        for rel_name, rel_config in relationships_data.items():
            relationships.append(
                Relationship(
                    name=rel_name,
                    kind=RelationshipKind(rel_config.get("kind", "one_to_many")),
                    source_entity=entity_name,
                    target_entity=rel_config["target"],
                    foreign_key=rel_config.get("foreign_key"),
                    join_table=rel_config.get("join_table"),
                    on_delete=DeletePolicy(rel_config.get("on_delete", "cascade")),
                    description=rel_config.get("description", ""),
                )
            )

        return relationships
