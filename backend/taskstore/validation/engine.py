"""Record validation engine.

This module implements the RecordValidator class that validates a complete
candidate record against its EntitySchema. Unlike field validation, which
stops at the first violated rule, record validation visits every field and
collects all failures so a caller gets a complete report in one pass.
"""

from datetime import UTC, datetime
from typing import Any

from ..core.schema import EntitySchema
from .errors import (
    READONLY_FIELD,
    UNKNOWN_FIELD,
    ValidationError,
    ValidationResult,
)
from .validators import coerce_value, normalize_value, validate_field


class RecordValidator:
    """Validates candidate records for one entity kind."""

    def __init__(self, schema: EntitySchema):
        self.schema = schema

    def validate(
        self,
        candidate: dict[str, Any],
        *,
        now: datetime | None = None,
        existing: dict[str, Any] | None = None,
    ) -> ValidationResult:
        """Validate a candidate record.

        On create (``existing`` is None) omitted fields receive their
        defaults. On update the candidate is merged over ``existing``; rules
        run for the supplied fields while stored values only need to be
        present, so a task whose due date has passed can still be completed.

        Args:
            candidate: Field values supplied by the caller
            now: Clock used by date comparisons, defaults to current UTC time
            existing: Stored field values of the record being updated

        Returns:
            ValidationResult with all errors and, when valid, the normalized
            values to store
        """
        checked_at = now or datetime.now(UTC)
        result = ValidationResult(is_valid=True)
        entity_name = self.schema.entity_name

        self._check_field_names(candidate, result)

        merged = self._merge(candidate, existing)
        values: dict[str, Any] = {}

        for spec in self.schema.fields:
            raw = merged.get(spec.name)
            unchanged = existing is not None and spec.name not in candidate
            if unchanged and raw is not None:
                values[spec.name] = raw
                continue

            normalized = normalize_value(raw, spec)

            error = validate_field(
                normalized, spec, entity_name=entity_name, now=checked_at
            )
            if error:
                result.add_error(error)
                continue

            values[spec.name], _ = coerce_value(normalized, spec, entity_name)

        if result.is_valid:
            result.values = values

        return result

    def _merge(
        self, candidate: dict[str, Any], existing: dict[str, Any] | None
    ) -> dict[str, Any]:
        if existing is not None:
            return {**existing, **candidate}

        merged = dict(candidate)
        for spec in self.schema.fields:
            if spec.name not in merged and spec.has_default:
                merged[spec.name] = spec.resolve_default()
        return merged

    def _check_field_names(
        self, candidate: dict[str, Any], result: ValidationResult
    ) -> None:
        known = set(self.schema.field_names)
        primary_key = self.schema.primary_key_field

        for name in candidate:
            if name == primary_key:
                result.add_error(
                    ValidationError(
                        type=READONLY_FIELD,
                        field=name,
                        entity=self.schema.entity_name,
                        message=f"Field '{name}' is assigned by the store",
                        help="Remove the primary key from the submitted fields",
                    )
                )
            elif name not in known:
                result.add_error(
                    ValidationError(
                        type=UNKNOWN_FIELD,
                        field=name,
                        entity=self.schema.entity_name,
                        message=f"Unknown field '{name}'",
                        help=f"Known fields: {', '.join(self.schema.field_names)}",
                    )
                )


def validate_record(
    schema: EntitySchema,
    candidate: dict[str, Any],
    *,
    now: datetime | None = None,
    existing: dict[str, Any] | None = None,
) -> ValidationResult:
    """Convenience wrapper around ``RecordValidator.validate``."""
    return RecordValidator(schema).validate(candidate, now=now, existing=existing)
