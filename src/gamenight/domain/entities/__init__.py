"""Domain entities for gamenight.

Entities are frozen dataclasses built from backend rows. They have no
dependencies on infrastructure or external frameworks.
"""

from gamenight.domain.entities.activity import Activity
from gamenight.domain.entities.event import Event
from gamenight.domain.entities.identity import Identity, Session
from gamenight.domain.entities.player import PLATFORMS, Player
from gamenight.domain.entities.player_activity_metadata import PlayerActivityMetadata
from gamenight.domain.entities.rsvp import Rsvp
from gamenight.domain.entities.vote import Vote

__all__ = [
    "Activity",
    "Event",
    "Identity",
    "PLATFORMS",
    "Player",
    "PlayerActivityMetadata",
    "Rsvp",
    "Session",
    "Vote",
]
