"""Declarative validation rules attached to schema fields.

Rules are small immutable value objects. Each rule knows how to check a
single, already type-checked value and returns a failure message, or ``None``
when the value passes. Rules never look at other fields or at store state;
uniqueness and foreign keys are enforced by the storage layer.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
import operator as op
import re
from typing import Any, ClassVar

NOW = "now"
"""Comparison reference resolved to the validation clock at check time."""


@dataclass(frozen=True)
class Rule:
    """Base class for all field rules."""

    name: str = "rule"
    message: str | None = None

    def check(self, value: Any, *, now: datetime) -> str | None:
        """Return a failure message if ``value`` violates the rule."""
        raise NotImplementedError

    def describe(self) -> str:
        """Short human-readable description used by the CLI."""
        return self.name


@dataclass(frozen=True)
class LengthRule(Rule):
    """String length bounds, both inclusive."""

    name: str = "length"
    min: int | None = None
    max: int | None = None

    def check(self, value: Any, *, now: datetime) -> str | None:
        length = len(value)
        if self.min is not None and length < self.min:
            return self.message or f"Must be at least {self.min} characters long"
        if self.max is not None and length > self.max:
            return self.message or f"Must be at most {self.max} characters long"
        return None

    def describe(self) -> str:
        lower = self.min if self.min is not None else 0
        upper = self.max if self.max is not None else "*"
        return f"length {lower}..{upper}"


@dataclass(frozen=True)
class PatternRule(Rule):
    """Regular expression that must match the whole value."""

    name: str = "pattern"
    pattern: str = ""

    def check(self, value: Any, *, now: datetime) -> str | None:
        if not re.fullmatch(self.pattern, str(value)):
            return self.message or f"Must match pattern {self.pattern}"
        return None

    def describe(self) -> str:
        return f"pattern {self.pattern}"


@dataclass(frozen=True)
class EnumRule(Rule):
    """Membership in a fixed set of literals."""

    name: str = "enum"
    values: tuple[Any, ...] = ()

    def check(self, value: Any, *, now: datetime) -> str | None:
        if value not in self.values:
            allowed = ", ".join(str(v) for v in self.values)
            return self.message or f"Must be one of: {allowed}"
        return None

    def describe(self) -> str:
        return f"one of {', '.join(str(v) for v in self.values)}"


@dataclass(frozen=True)
class ComparisonRule(Rule):
    """Numeric or date comparison against a fixed reference or ``"now"``."""

    OPERATORS: ClassVar[dict[str, Callable[[Any, Any], bool]]] = {
        "gt": op.gt,
        "ge": op.ge,
        "lt": op.lt,
        "le": op.le,
        "eq": op.eq,
        "ne": op.ne,
    }

    name: str = "comparison"
    operator: str = "gt"
    reference: Any = NOW

    def __post_init__(self) -> None:
        if self.operator not in self.OPERATORS:
            raise ValueError(
                f"Unsupported comparison operator '{self.operator}'. "
                f"Supported: {', '.join(self.OPERATORS)}"
            )
        # Fixed date references become aware UTC datetimes, like stored dates
        reference = self.reference
        if isinstance(reference, datetime):
            if reference.tzinfo is None:
                object.__setattr__(self, "reference", reference.replace(tzinfo=UTC))
        elif isinstance(reference, date):
            object.__setattr__(
                self,
                "reference",
                datetime(reference.year, reference.month, reference.day, tzinfo=UTC),
            )

    @property
    def is_relative(self) -> bool:
        """Whether the rule compares against the validation clock."""
        return isinstance(self.reference, str) and self.reference == NOW

    def check(self, value: Any, *, now: datetime) -> str | None:
        reference = now if self.is_relative else self.reference
        if not self.OPERATORS[self.operator](value, reference):
            return self.message or f"Must be {self.operator} {reference}"
        return None

    def describe(self) -> str:
        return f"{self.operator} {self.reference}"


@dataclass(frozen=True)
class PredicateRule(Rule):
    """Arbitrary predicate with a human-readable failure message."""

    name: str = "predicate"
    predicate: Callable[[Any], bool] = field(default=lambda _value: True, compare=False)

    def check(self, value: Any, *, now: datetime) -> str | None:
        if not self.predicate(value):
            return self.message or f"Failed check '{self.name}'"
        return None


__all__ = [
    "NOW",
    "ComparisonRule",
    "EnumRule",
    "LengthRule",
    "PatternRule",
    "PredicateRule",
    "Rule",
]
