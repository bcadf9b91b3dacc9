"""Live watchers, view state and write actions."""

from gamenight.application.actions import GameNightActions, ProfileUpdate
from gamenight.application.live_row import LiveRow
from gamenight.application.live_rows import LiveRows
from gamenight.application.notifications import (
    Confirmer,
    LogNotifier,
    Notification,
    NotificationStatus,
    Notifier,
)
from gamenight.application.scope import ALL_ROWS, DISABLED, RowFilters
from gamenight.application.session import SessionWatcher
from gamenight.application.store import GameNightStore
from gamenight.application.view_state import ViewState

__all__ = [
    "ALL_ROWS",
    "Confirmer",
    "DISABLED",
    "GameNightActions",
    "GameNightStore",
    "LiveRow",
    "LiveRows",
    "LogNotifier",
    "Notification",
    "NotificationStatus",
    "Notifier",
    "ProfileUpdate",
    "RowFilters",
    "SessionWatcher",
    "ViewState",
]
