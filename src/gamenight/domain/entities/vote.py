"""Vote entity: a player's vote for an activity at an event."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from gamenight.domain.entities._parsing import joined_name, parse_timestamp


@dataclass(frozen=True)
class Vote:
    """Vote, unique per (event, activity, player).

    ``player_name`` is only populated when fetched with the
    ``players(name)`` projection.
    """

    id: int
    event_id: int
    activity_id: int
    player_id: str
    created_at: datetime | None = None
    player_name: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Vote":
        return cls(
            id=row["id"],
            event_id=row["event_id"],
            activity_id=row["activity_id"],
            player_id=row["player_id"],
            created_at=parse_timestamp(row.get("created_at")),
            player_name=joined_name(dict(row)),
        )
