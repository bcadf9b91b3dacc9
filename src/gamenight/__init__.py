"""gamenight - live-synced client for a group's recurring game night.

Members sign in with Discord, vote on activities for tonight's event and
RSVP; every view stays current through the backend's change events.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
