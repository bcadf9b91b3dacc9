"""Filter predicates shared by queries and change subscriptions.

A filter is a (field, operator, value) triple. Queries send it as a
``field=op.value`` query parameter and change subscriptions send it as the
same ``field=op.value`` expression, so one type serves both.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import FilterSyntaxError


class Operator(str, Enum):
    """Comparison operators understood by the query and change APIs."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    IS = "is"


@dataclass(frozen=True)
class Filter:
    """A single predicate on one field of a row."""

    field: str
    op: Operator
    value: str

    @classmethod
    def of(cls, field: str, op: str | Operator, value: Any) -> "Filter":
        """Build a filter, rendering the value the way the wire format expects."""
        try:
            operator = Operator(op)
        except ValueError as e:
            raise FilterSyntaxError(f"Unknown operator '{op}'") from e
        return cls(field=field, op=operator, value=_render_value(operator, value))

    @classmethod
    def eq(cls, field: str, value: Any) -> "Filter":
        return cls.of(field, Operator.EQ, value)

    def to_param(self) -> tuple[str, str]:
        """Query-string pair, e.g. ``("event_id", "eq.5")``."""
        return self.field, f"{self.op.value}.{self.value}"

    def to_expression(self) -> str:
        """Change-subscription expression, e.g. ``event_id=eq.5``."""
        return f"{self.field}={self.op.value}.{self.value}"

    def __str__(self) -> str:
        return self.to_expression()


def parse_filter(expression: str) -> Filter:
    """Parse a ``field=op.value`` change-filter expression.

    Raises:
        FilterSyntaxError: If the expression is malformed.
    """
    if not expression:
        raise FilterSyntaxError("Empty filter expression", 0)

    eq_pos = expression.find("=")
    if eq_pos <= 0:
        raise FilterSyntaxError("Expected 'field=op.value'", max(eq_pos, 0))

    field = expression[:eq_pos]
    if not all(c.isalnum() or c == "_" for c in field):
        raise FilterSyntaxError(f"Invalid field name '{field}'", 0)

    rest = expression[eq_pos + 1:]
    dot_pos = rest.find(".")
    if dot_pos <= 0:
        raise FilterSyntaxError("Expected operator followed by '.'", eq_pos + 1)

    op = rest[:dot_pos]
    try:
        operator = Operator(op)
    except ValueError:
        raise FilterSyntaxError(f"Unknown operator '{op}'", eq_pos + 1) from None

    value = rest[dot_pos + 1:]
    if value == "":
        raise FilterSyntaxError("Missing value", eq_pos + dot_pos + 2)
    if operator is Operator.IN and not (value.startswith("(") and value.endswith(")")):
        raise FilterSyntaxError("'in' expects a parenthesized list", eq_pos + dot_pos + 2)

    return Filter(field=field, op=operator, value=value)


def _render_scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _render_value(op: Operator, value: Any) -> str:
    if op is Operator.IN:
        if isinstance(value, str):
            return value if value.startswith("(") else f"({value})"
        return "(" + ",".join(_render_scalar(v) for v in value) + ")"
    return _render_scalar(value)

