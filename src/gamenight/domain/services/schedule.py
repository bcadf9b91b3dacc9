"""Active-event selection.

Pure functions over the event roster. The active event is the one game
night considered to be "tonight" at a given instant.
"""

from datetime import datetime, time
from typing import Iterable, Literal

from gamenight.domain.entities import Event

ActiveEventMode = Literal["day", "interval"]


def event_window(event: Event, tz=None) -> tuple[datetime, datetime]:
    """Validity interval of an event.

    Runs from ``start_at`` to ``end_at`` when set, otherwise to the last
    instant of the start day in ``tz`` (the event's own zone when omitted).
    """
    if event.end_at is not None:
        return event.start_at, event.end_at
    local_start = event.start_at.astimezone(tz) if tz is not None else event.start_at
    end_of_day = datetime.combine(local_start.date(), time.max, tzinfo=local_start.tzinfo)
    return event.start_at, end_of_day


def is_active(event: Event, now: datetime, mode: ActiveEventMode = "day") -> bool:
    """Whether ``event`` counts as tonight's event at ``now``.

    ``day`` compares the start date with ``now``'s calendar date, in
    ``now``'s timezone. ``interval`` checks ``now`` against the event window.
    """
    if mode == "day":
        return event.start_at.astimezone(now.tzinfo).date() == now.date()
    start, end = event_window(event, now.tzinfo)
    return start <= now <= end


def select_active_event(
    events: Iterable[Event],
    now: datetime,
    mode: ActiveEventMode = "day",
) -> Event | None:
    """Return the first event active at ``now``, or None."""
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    for event in events:
        if is_active(event, now, mode):
            return event
    return None


def next_event(events: Iterable[Event], now: datetime) -> Event | None:
    """Return the earliest event starting after ``now``, or None."""
    upcoming = [event for event in events if event.start_at > now]
    if not upcoming:
        return None
    return min(upcoming, key=lambda event: event.start_at)
