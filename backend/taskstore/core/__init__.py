"""Core functionality for the task store."""

from .logging import (
    StorageOperationLogger,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from .rules import (
    NOW,
    ComparisonRule,
    EnumRule,
    LengthRule,
    PatternRule,
    PredicateRule,
    Rule,
)
from .schema import (
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
from .schema_loader import BUNDLED_SCHEMA_DIR, FileSchemaLoader, SchemaLoader

__all__ = [
    # Rules
    "NOW",
    "ComparisonRule",
    "EnumRule",
    "LengthRule",
    "PatternRule",
    "PredicateRule",
    "Rule",
    # Schema components
    "BUNDLED_SCHEMA_DIR",
    "DeletePolicy",
    "EntitySchema",
    "FieldKind",
    "FieldSpec",
    "FileSchemaLoader",
    "Relationship",
    "RelationshipKind",
    "SchemaBundle",
    "SchemaLoadError",
    "SchemaLoader",
    "SchemaValidationError",
    # Logging
    "StorageOperationLogger",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
]
