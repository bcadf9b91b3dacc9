"""Per-player flags on an activity."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from gamenight.domain.entities._parsing import parse_timestamp


@dataclass(frozen=True)
class PlayerActivityMetadata:
    """Favorite and setup flags, unique per (player, activity)."""

    id: int
    player_id: str
    activity_id: int
    is_favorite: bool = False
    is_setup: bool | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PlayerActivityMetadata":
        return cls(
            id=row["id"],
            player_id=row["player_id"],
            activity_id=row["activity_id"],
            is_favorite=bool(row.get("is_favorite", False)),
            is_setup=row.get("is_setup"),
            created_at=parse_timestamp(row.get("created_at")),
        )
