"""Domain services for gamenight.

Pure functions with no dependencies on infrastructure or external frameworks.
"""

from gamenight.domain.services.row_cache import (
    apply_delete,
    apply_insert,
    apply_update,
    dedupe,
)
from gamenight.domain.services.schedule import (
    ActiveEventMode,
    event_window,
    is_active,
    next_event,
    select_active_event,
)

__all__ = [
    "ActiveEventMode",
    "apply_delete",
    "apply_insert",
    "apply_update",
    "dedupe",
    "event_window",
    "is_active",
    "next_event",
    "select_active_event",
]
