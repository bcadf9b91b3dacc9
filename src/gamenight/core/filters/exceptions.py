"""Exceptions for filter parsing."""

class FilterError(Exception):
    """Base class for all filter-related errors."""
    pass

class FilterSyntaxError(FilterError):
    """Raised when a change-filter expression is malformed."""
    def __init__(self, message: str, position: int | None = None):
        self.position = position
        super().__init__(f"{message} at position {position}" if position is not None else message)
