"""Shared view state.

A single read-only snapshot of everything the display layer needs. It is
produced by the store and passed explicitly to consumers; the only way to
change what it shows is a write through the remote client.
"""

from collections import Counter
from dataclasses import dataclass

from gamenight.domain.entities import (
    Activity,
    Event,
    Identity,
    Player,
    PlayerActivityMetadata,
    Rsvp,
    Vote,
)


@dataclass(frozen=True)
class ViewState:
    """Snapshot of session, profile, roster, schedule, votes and RSVPs."""

    user: Identity | None = None
    is_user_loading: bool = True

    player: Player | None = None
    is_player_loading: bool = True
    player_error: Exception | None = None

    events: tuple[Event, ...] = ()
    is_events_loading: bool = True
    events_error: Exception | None = None
    active_event: Event | None = None
    next_event: Event | None = None

    activities: tuple[Activity, ...] = ()
    is_activities_loading: bool = True
    activities_error: Exception | None = None

    votes: tuple[Vote, ...] = ()
    is_votes_loading: bool = True
    votes_error: Exception | None = None

    rsvps: tuple[Rsvp, ...] = ()
    is_rsvps_loading: bool = True
    rsvps_error: Exception | None = None

    activity_metadata: tuple[PlayerActivityMetadata, ...] = ()
    is_activity_metadata_loading: bool = True
    activity_metadata_error: Exception | None = None

    @property
    def can_vote(self) -> bool:
        return self.player is not None and self.active_event is not None

    @property
    def is_rsvped(self) -> bool:
        """Whether the signed-in player has an RSVP for the active event."""
        return self.rsvp_for_player() is not None

    def rsvp_for_player(self) -> Rsvp | None:
        if self.player is None or self.active_event is None:
            return None
        for rsvp in self.rsvps:
            if rsvp.player_id == self.player.id and rsvp.event_id == self.active_event.id:
                return rsvp
        return None

    def votes_for(self, activity_id: int) -> tuple[Vote, ...]:
        """Votes cast for an activity at the active event."""
        if self.active_event is None:
            return ()
        return tuple(
            vote
            for vote in self.votes
            if vote.event_id == self.active_event.id and vote.activity_id == activity_id
        )

    def _event_votes(self) -> tuple[Vote, ...]:
        if self.active_event is None:
            return ()
        return tuple(vote for vote in self.votes if vote.event_id == self.active_event.id)

    def player_vote_for(self, activity_id: int) -> Vote | None:
        for vote in self.player_votes():
            if vote.activity_id == activity_id:
                return vote
        return None

    def player_votes(self) -> tuple[Vote, ...]:
        """The signed-in player's votes at the active event."""
        if self.player is None:
            return ()
        return tuple(vote for vote in self._event_votes() if vote.player_id == self.player.id)

    def vote_tally(self) -> list[tuple[Activity, int]]:
        """Vote count per activity at the active event, in roster order."""
        counts = Counter(vote.activity_id for vote in self._event_votes())
        return [(activity, counts.get(activity.id, 0)) for activity in self.activities]

    def metadata_for(self, activity_id: int) -> PlayerActivityMetadata | None:
        for metadata in self.activity_metadata:
            if metadata.activity_id == activity_id:
                return metadata
        return None

    def is_favorite(self, activity_id: int) -> bool:
        metadata = self.metadata_for(activity_id)
        return bool(metadata and metadata.is_favorite)

    def activity(self, activity_id: int) -> Activity | None:
        for activity in self.activities:
            if activity.id == activity_id:
                return activity
        return None
