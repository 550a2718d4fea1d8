"""Record and field validation for entity schemas.

This package evaluates declarative field rules (length, pattern, enum,
comparison, predicate) and validates whole candidate records against an
EntitySchema, collecting every failure in a single ValidationResult.
"""

from .engine import RecordValidator, validate_record
from .errors import (
    INVALID_FIELD_TYPE,
    READONLY_FIELD,
    REQUIRED_FIELD_MISSING,
    UNKNOWN_FIELD,
    VALIDATION_FAILED,
    ValidationError,
    ValidationResult,
)
from .validators import (
    NORMALIZERS,
    ColorValidator,
    EmailValidator,
    NamedPredicates,
    PasswordStrengthValidator,
    coerce_value,
    normalize_value,
    validate_field,
    validate_value,
)

__all__ = [
    "INVALID_FIELD_TYPE",
    "NORMALIZERS",
    "READONLY_FIELD",
    "REQUIRED_FIELD_MISSING",
    "UNKNOWN_FIELD",
    "VALIDATION_FAILED",
    "ColorValidator",
    "EmailValidator",
    "NamedPredicates",
    "PasswordStrengthValidator",
    "RecordValidator",
    "ValidationError",
    "ValidationResult",
    "coerce_value",
    "normalize_value",
    "validate_field",
    "validate_record",
    "validate_value",
]
