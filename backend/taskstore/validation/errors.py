"""Error and result data structures for record validation.

Validation never raises for bad data: every problem found is described by a
``ValidationError`` and collected in a ``ValidationResult`` so that callers
can render a complete report (for example form errors) in one pass.
"""

from dataclasses import dataclass, field
from typing import Any

REQUIRED_FIELD_MISSING = "required_field_missing"
VALIDATION_FAILED = "validation_failed"
INVALID_FIELD_TYPE = "invalid_field_type"
UNKNOWN_FIELD = "unknown_field"
READONLY_FIELD = "readonly_field"


@dataclass
class ValidationError:
    """Represents a validation error.

    Contains detailed information about what went wrong during validation,
    including the rule that failed and context to help users fix the issue.
    """

    type: str
    message: str
    field: str | None = None
    entity: str | None = None
    rule: str | None = None
    help: str | None = None

    def __str__(self) -> str:
        """Return a formatted string representation of the error."""
        parts = [f"{self.type}: {self.message}"]

        if self.entity:
            parts.append(f"(entity: {self.entity})")
        if self.field:
            parts.append(f"(field: {self.field})")
        if self.rule:
            parts.append(f"(rule: {self.rule})")
        if self.help:
            parts.append(f"Help: {self.help}")

        return " ".join(parts)


@dataclass
class ValidationResult:
    """Complete validation result for one candidate record.

    ``values`` holds the normalized field mapping (defaults applied) and is
    only populated when the record is valid.
    """

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    values: dict[str, Any] | None = None

    @property
    def error_count(self) -> int:
        """Number of validation errors."""
        return len(self.errors)

    @property
    def failed_fields(self) -> list[str]:
        """Names of the fields with at least one error, in report order."""
        names: list[str] = []
        for error in self.errors:
            if error.field and error.field not in names:
                names.append(error.field)
        return names

    def errors_for(self, field_name: str) -> list[ValidationError]:
        """Errors reported against a single field."""
        return [error for error in self.errors if error.field == field_name]

    def add_error(self, error: ValidationError) -> None:
        """Add a validation error to the result."""
        self.errors.append(error)
        self.is_valid = False

    def __str__(self) -> str:
        """Return a formatted string representation of the validation result."""
        if self.is_valid:
            return "✅ Valid"

        lines = [f"❌ Invalid ({self.error_count} errors)"]

        if self.errors:
            lines.append("\nErrors:")
            for error in self.errors:
                lines.append(f"  - {error}")

        return "\n".join(lines)
