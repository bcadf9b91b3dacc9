"""Event entity: one scheduled game night."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from gamenight.domain.entities._parsing import parse_timestamp


@dataclass(frozen=True)
class Event:
    """A scheduled game night.

    Attributes:
        id: Numeric identifier.
        start_at: When the night starts.
        end_at: Explicit end, if any. Without one the event runs to the end of its start day.
        created_at: Creation timestamp.
    """

    id: int
    start_at: datetime
    end_at: datetime | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.end_at is not None and self.end_at < self.start_at:
            raise ValueError("Event end_at must not be before start_at")

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Event":
        return cls(
            id=row["id"],
            start_at=parse_timestamp(row["start_at"]),
            end_at=parse_timestamp(row.get("end_at")),
            created_at=parse_timestamp(row.get("created_at")),
        )
