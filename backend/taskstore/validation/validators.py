"""Field-level validator implementations and utilities.

This module evaluates declarative rules against single values. It also
provides the named predicates and normalizers that YAML schemas refer to by
name, so that custom checks such as password strength stay declarative.
"""

from collections.abc import Callable
from datetime import UTC, date, datetime
import re
from typing import Any, ClassVar

from ..core.rules import PredicateRule, Rule
from ..core.schema import FieldKind, FieldSpec
from .errors import (
    INVALID_FIELD_TYPE,
    REQUIRED_FIELD_MISSING,
    VALIDATION_FAILED,
    ValidationError,
)


class EmailValidator:
    """Specialized validator for email addresses."""

    EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    @classmethod
    def is_valid(cls, email: str) -> bool:
        return re.match(cls.EMAIL_PATTERN, email) is not None


class PasswordStrengthValidator:
    """Password must mix upper case, digits and special characters."""

    STRONG_PATTERN = r"^(?=.*[A-Z])(?=.*\d)(?=.*[\W_]).{8,100}$"
    MESSAGE = (
        "Password must contain at least one uppercase letter, one number, "
        "and one special character."
    )

    @classmethod
    def is_strong(cls, password: str) -> bool:
        return re.match(cls.STRONG_PATTERN, password) is not None


class ColorValidator:
    """Hex color codes such as ``#3498db`` or ``#fff``."""

    HEX_PATTERN = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"

    @classmethod
    def is_hex(cls, color: str) -> bool:
        return re.match(cls.HEX_PATTERN, color) is not None


class NamedPredicates:
    """Registry of predicates that schemas can reference by name."""

    PREDICATES: ClassVar[dict[str, tuple[Callable[[Any], bool], str]]] = {
        "email": (EmailValidator.is_valid, "Must be a valid email address"),
        "lowercase": (lambda v: v == v.lower(), "Must be lowercase"),
        "alphanumeric": (
            lambda v: v.isascii() and v.isalnum(),
            "Must contain only letters and numbers",
        ),
        "alpha": (
            lambda v: v.isascii() and v.isalpha(),
            "Must contain only letters",
        ),
        "strong_password": (
            PasswordStrengthValidator.is_strong,
            PasswordStrengthValidator.MESSAGE,
        ),
        "hex_color": (ColorValidator.is_hex, "Must be a hex color like #3498db"),
        "not_empty": (lambda v: bool(str(v).strip()), "Must not be empty"),
    }

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls.PREDICATES)

    @classmethod
    def build_rule(cls, name: str, message: str | None = None) -> PredicateRule:
        """Create a ``PredicateRule`` for a registered predicate.

        Raises:
            KeyError: If no predicate is registered under ``name``
        """
        if name not in cls.PREDICATES:
            raise KeyError(
                f"Unknown predicate '{name}'. Available: {', '.join(cls.names())}"
            )
        predicate, default_message = cls.PREDICATES[name]
        return PredicateRule(
            name=name, predicate=predicate, message=message or default_message
        )


NORMALIZERS: dict[str, Callable[[Any], Any]] = {
    "lowercase": lambda v: v.lower() if isinstance(v, str) else v,
    "uppercase": lambda v: v.upper() if isinstance(v, str) else v,
    "strip": lambda v: v.strip() if isinstance(v, str) else v,
}


def normalize_value(value: Any, field_spec: FieldSpec) -> Any:
    """Apply the field's normalizers in declaration order."""
    if value is None:
        return None
    for name in field_spec.normalizers:
        value = NORMALIZERS[name](value)
    return value


def coerce_value(
    value: Any, field_spec: FieldSpec, entity_name: str | None = None
) -> tuple[Any, ValidationError | None]:
    """Convert ``value`` to the field's kind.

    Dates accept ``datetime``, ``date`` and ISO 8601 strings and always come
    back as timezone-aware UTC datetimes.

    Returns:
        Tuple of (coerced value, type error or None)
    """
    if value is None:
        return None, None

    kind = field_spec.kind

    if kind in (FieldKind.STRING, FieldKind.ENUM):
        if isinstance(value, str):
            return value, None
    elif kind == FieldKind.INT:
        if isinstance(value, int) and not isinstance(value, bool):
            return value, None
    elif kind == FieldKind.DATE:
        parsed = _parse_date(value)
        if parsed is not None:
            return parsed, None

    return value, ValidationError(
        type=INVALID_FIELD_TYPE,
        field=field_spec.name,
        entity=entity_name,
        rule="kind",
        message=f"Field '{field_spec.name}' must be of kind {kind.value}",
        help=f"Got {type(value).__name__}",
    )


def _parse_date(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def validate_value(
    value: Any,
    rule: Rule,
    *,
    field_name: str | None = None,
    entity_name: str | None = None,
    now: datetime | None = None,
) -> ValidationError | None:
    """Validate one non-null value against one rule.

    Returns:
        ValidationError if the rule is violated, None otherwise
    """
    message = rule.check(value, now=now or datetime.now(UTC))
    if message is None:
        return None

    return ValidationError(
        type=VALIDATION_FAILED,
        field=field_name,
        entity=entity_name,
        rule=rule.name,
        message=message,
    )


def validate_field(
    value: Any,
    field_spec: FieldSpec,
    *,
    entity_name: str | None = None,
    now: datetime | None = None,
) -> ValidationError | None:
    """Validate a value against every rule of a field.

    Null handling comes first: a null on a non-nullable field is reported as
    missing, a null on a nullable field skips every rule. Otherwise the kind
    is checked and the rules run in order until the first violation.

    Returns:
        The first ValidationError found, or None if the value is valid
    """
    if value is None:
        if field_spec.nullable:
            return None
        return ValidationError(
            type=REQUIRED_FIELD_MISSING,
            field=field_spec.name,
            entity=entity_name,
            rule="required",
            message=f"Missing required field '{field_spec.name}'",
            help=f"Field '{field_spec.name}' is required and must be provided",
        )

    value, type_error = coerce_value(value, field_spec, entity_name)
    if type_error:
        return type_error

    checked_at = now or datetime.now(UTC)
    for rule in field_spec.effective_rules():
        error = validate_value(
            value,
            rule,
            field_name=field_spec.name,
            entity_name=entity_name,
            now=checked_at,
        )
        if error:
            return error

    return None
