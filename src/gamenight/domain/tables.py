"""Table descriptors.

Each descriptor ties a backend table name to the entity type its rows parse
into and the field that identifies a row. Watchers and actions take
descriptors instead of raw table-name strings.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Mapping, TypeVar

from gamenight.domain.entities import (
    Activity,
    Event,
    Player,
    PlayerActivityMetadata,
    Rsvp,
    Vote,
)

T = TypeVar("T")

# Embeds the voter's name so avatars can be labelled without a second lookup
WITH_PLAYER_NAME = "*,players(name)"


@dataclass(frozen=True)
class Table(Generic[T]):
    """Schema descriptor for one table."""

    name: str
    parser: Callable[[Mapping[str, Any]], T]
    key: str = "id"

    def parse(self, row: Mapping[str, Any]) -> T:
        return self.parser(row)

    def key_of(self, entity: T) -> Any:
        return getattr(entity, self.key)

    def row_key(self, row: Mapping[str, Any]) -> Any:
        return row.get(self.key)

    def __str__(self) -> str:
        return self.name


ACTIVITIES: Table[Activity] = Table("activities", Activity.from_row)
EVENTS: Table[Event] = Table("events", Event.from_row)
PLAYERS: Table[Player] = Table("players", Player.from_row)
RSVPS: Table[Rsvp] = Table("rsvps", Rsvp.from_row)
VOTES: Table[Vote] = Table("votes", Vote.from_row)
PLAYER_ACTIVITY_METADATA: Table[PlayerActivityMetadata] = Table(
    "player_activity_metadata", PlayerActivityMetadata.from_row
)
