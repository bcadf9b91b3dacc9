"""Row-set scopes: which rows a live watcher fetches and listens to."""

from dataclasses import dataclass
from typing import Any, Final

from gamenight.core.filters import Filter, parse_filter


@dataclass(frozen=True)
class RowFilters:
    """Initial-fetch filters (ANDed) plus one change-event filter expression.

    ``change`` is sent to the realtime service as-is; ``None`` listens to
    every change on the table.
    """

    initial: tuple[Filter, ...] = ()
    change: str | None = None

    def __post_init__(self) -> None:
        if self.change is not None:
            # Fail at construction rather than at subscribe time
            parse_filter(self.change)

    @classmethod
    def equal(cls, field: str, value: Any) -> "RowFilters":
        """Scope to rows whose ``field`` equals ``value``, for fetch and changes."""
        predicate = Filter.eq(field, value)
        return cls(initial=(predicate,), change=predicate.to_expression())


class _Disabled:
    """Sentinel scope: no parent entity, so no rows, no fetch, no subscription."""

    _instance = None

    def __new__(cls) -> "_Disabled":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DISABLED"

    def __bool__(self) -> bool:
        return False


DISABLED: Final = _Disabled()
ALL_ROWS: Final = RowFilters()

Scope = RowFilters | _Disabled
