"""Composition root for the live view state.

The store owns every watcher, keeps their scopes consistent with each other
(the player follows the session, votes and RSVPs follow the active event,
activity metadata follows the player) and republishes a ``ViewState``
whenever any input changes.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable

from gamenight.application.live_row import LiveRow
from gamenight.application.live_rows import LiveRows
from gamenight.application.scope import DISABLED, RowFilters
from gamenight.application.session import SessionWatcher
from gamenight.application.view_state import ViewState
from gamenight.application.watcher import Watcher
from gamenight.core.logging import get_logger
from gamenight.domain.entities import (
    Activity,
    Event,
    Player,
    PlayerActivityMetadata,
    Rsvp,
    Vote,
)
from gamenight.domain.services import ActiveEventMode, next_event, select_active_event
from gamenight.domain.tables import (
    ACTIVITIES,
    EVENTS,
    PLAYER_ACTIVITY_METADATA,
    PLAYERS,
    RSVPS,
    VOTES,
    WITH_PLAYER_NAME,
)
from gamenight.infrastructure.remote import RemoteDataClient

logger = get_logger(__name__)

Clock = Callable[[], datetime]
StateListener = Callable[[ViewState], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).astimezone()


class GameNightStore:
    """Owns the watchers and publishes the merged view state.

    Example:
        store = GameNightStore(remote)
        store.subscribe(render)
        await store.start()
        await store.wait_settled()
        ...
        await store.close()
    """

    def __init__(
        self,
        remote: RemoteDataClient,
        clock: Clock = _utc_now,
        active_event_mode: ActiveEventMode = "day",
    ) -> None:
        self.remote = remote
        self.clock = clock
        self.active_event_mode = active_event_mode

        self.session = SessionWatcher(remote.auth)
        self.player: LiveRow[Player] = LiveRow(remote, PLAYERS)
        self.activities: LiveRows[Activity] = LiveRows(remote, ACTIVITIES)
        self.events: LiveRows[Event] = LiveRows(remote, EVENTS)
        self.votes: LiveRows[Vote] = LiveRows(remote, VOTES, DISABLED, projection=WITH_PLAYER_NAME)
        self.rsvps: LiveRows[Rsvp] = LiveRows(remote, RSVPS, DISABLED, projection=WITH_PLAYER_NAME)
        self.activity_metadata: LiveRows[PlayerActivityMetadata] = LiveRows(
            remote, PLAYER_ACTIVITY_METADATA, DISABLED
        )

        self._state = ViewState()
        self._listeners: list[StateListener] = []
        self._recomputing = False
        self._dirty = False
        self._started = False

    @property
    def watchers(self) -> tuple[Watcher, ...]:
        return (
            self.session,
            self.player,
            self.activities,
            self.events,
            self.votes,
            self.rsvps,
            self.activity_metadata,
        )

    @property
    def state(self) -> ViewState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with every new state; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        for watcher in self.watchers:
            watcher.add_listener(self._on_watcher_change)
        self.session.start()
        self.player.start()
        self.activities.start()
        self.events.start()
        self.votes.start()
        self.rsvps.start()
        self.activity_metadata.start()
        self._recompute()

    def tick(self) -> None:
        """Re-evaluate time-dependent fields (the active event) against the clock."""
        self._recompute()

    def _on_watcher_change(self, watcher: Watcher) -> None:
        self._recompute()

    def _recompute(self) -> None:
        if self._recomputing:
            self._dirty = True
            return
        self._recomputing = True
        try:
            while True:
                self._dirty = False
                self._rescope()
                state = self._build()
                if not self._dirty:
                    break
        finally:
            self._recomputing = False

        if state != self._state:
            self._state = state
            for listener in list(self._listeners):
                listener(state)

    def _active_event(self) -> Event | None:
        return select_active_event(self.events.rows, self.clock(), self.active_event_mode)

    def _rescope(self) -> None:
        user = self.session.user
        self.player.set_key(user.id if user else None)

        active = self._active_event()
        event_scope = RowFilters.equal("event_id", active.id) if active else DISABLED
        self.votes.set_scope(event_scope)
        self.rsvps.set_scope(event_scope)

        player = self.player.row
        self.activity_metadata.set_scope(
            RowFilters.equal("player_id", player.id) if player else DISABLED
        )

    def _build(self) -> ViewState:
        now = self.clock()
        return ViewState(
            user=self.session.user,
            is_user_loading=self.session.is_loading,
            player=self.player.row,
            is_player_loading=self.player.is_loading,
            player_error=self.player.error,
            events=self.events.rows,
            is_events_loading=self.events.is_loading,
            events_error=self.events.error,
            active_event=self._active_event(),
            next_event=next_event(self.events.rows, now),
            activities=self.activities.rows,
            is_activities_loading=self.activities.is_loading,
            activities_error=self.activities.error,
            votes=self.votes.rows,
            is_votes_loading=self.votes.is_loading,
            votes_error=self.votes.error,
            rsvps=self.rsvps.rows,
            is_rsvps_loading=self.rsvps.is_loading,
            rsvps_error=self.rsvps.error,
            activity_metadata=self.activity_metadata.rows,
            is_activity_metadata_loading=self.activity_metadata.is_loading,
            activity_metadata_error=self.activity_metadata.error,
        )

    async def wait_settled(self, timeout: float | None = None) -> ViewState:
        """Wait until every watcher's current scope has loaded.

        Rescoping while waiting (e.g. the player row arriving and enabling
        the metadata watcher) restarts the wait.
        """

        async def settle() -> None:
            while not all(watcher.is_settled for watcher in self.watchers):
                pending = [w.wait_settled() for w in self.watchers if not w.is_settled]
                await asyncio.gather(*pending)
                # Let listener-driven rescoping run before re-checking
                await asyncio.sleep(0)

        await asyncio.wait_for(settle(), timeout=timeout)
        return self._state

    async def close(self) -> None:
        for watcher in self.watchers:
            await watcher.close()
        self._listeners.clear()
        self._started = False
