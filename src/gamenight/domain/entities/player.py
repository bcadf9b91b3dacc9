"""Player entity: the profile of a verified member."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from gamenight.domain.entities._parsing import parse_timestamp

PLATFORMS = ("windows", "mac", "mobile")


@dataclass(frozen=True)
class Player:
    """Player profile keyed by the auth user id.

    A signed-in user without a player row is pending manual verification.
    """

    id: str
    name: str | None = None
    platforms: tuple[str, ...] = ()
    is_verified: bool = False
    steam_profile_url: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Player":
        return cls(
            id=row["id"],
            name=row.get("name"),
            platforms=tuple(row.get("platforms") or ()),
            is_verified=bool(row.get("is_verified", False)),
            steam_profile_url=row.get("steam_profile_url"),
            created_at=parse_timestamp(row.get("created_at")),
        )

    @property
    def display_name(self) -> str:
        return self.name or "Unnamed Player"
