"""Filter predicates and change-filter expression parsing."""

from .exceptions import FilterError, FilterSyntaxError
from .predicates import Filter, Operator, parse_filter

__all__ = [
    "Filter",
    "FilterError",
    "FilterSyntaxError",
    "Operator",
    "parse_filter",
]
