"""Activity entity: something the group can play."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from gamenight.domain.entities._parsing import parse_timestamp


@dataclass(frozen=True)
class Activity:
    """An entry on the activity roster.

    Attributes:
        id: Numeric identifier.
        name: Display name.
        type: Kind of activity (e.g. 'video_game', 'board_game').
        min_players: Minimum number of players.
        max_players: Maximum number of players, if bounded.
        recommended_players: Sweet-spot player count, if known.
        platforms: Platforms it runs on.
        tags: Free-form tags.
        thumbnail_urls: Image URLs shown on the activity card.
        summary: One-line summary.
        description: Longer description.
        price: Price in cents, None or 0 when free.
        price_type: 'one_time' or 'subscription'.
        storage_required: Disk space hint.
        discord_channel_id: Channel used while playing.
        created_at: Creation timestamp.
    """

    id: int
    name: str
    type: str
    min_players: int = 1
    max_players: int | None = None
    recommended_players: int | None = None
    platforms: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    thumbnail_urls: tuple[str, ...] = ()
    summary: str | None = None
    description: str | None = None
    price: int | None = None
    price_type: str | None = None
    storage_required: str | None = None
    discord_channel_id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Activity":
        return cls(
            id=row["id"],
            name=row["name"],
            type=row.get("type", ""),
            min_players=row.get("min_players", 1),
            max_players=row.get("max_players"),
            recommended_players=row.get("recommended_players"),
            platforms=tuple(row.get("platforms") or ()),
            tags=tuple(row.get("tags") or ()),
            thumbnail_urls=tuple(row.get("thumbnail_urls") or ()),
            summary=row.get("summary"),
            description=row.get("description"),
            price=row.get("price"),
            price_type=row.get("price_type"),
            storage_required=row.get("storage_required"),
            discord_channel_id=row.get("discord_channel_id"),
            created_at=parse_timestamp(row.get("created_at")),
        )

    @property
    def is_free(self) -> bool:
        return not self.price

    @property
    def formatted_price(self) -> str:
        """Price for display: '$N' from cents, 'Free!' when there is none."""
        if self.is_free:
            return "Free!"
        amount = self.price / 100
        text = f"${amount:g}" if amount == int(amount) else f"${amount:.2f}"
        if self.price_type == "subscription":
            text += " subscription"
        return text
