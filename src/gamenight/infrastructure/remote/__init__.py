"""Remote data client boundary and adapters."""

from gamenight.infrastructure.remote.base import (
    AuthCallback,
    AuthClient,
    AuthEvent,
    AuthSubscription,
    ChangeCallback,
    ChangeEvent,
    ChangeType,
    Channel,
    RemoteDataClient,
    Row,
)
from gamenight.infrastructure.remote.errors import (
    AuthError,
    RemoteDataError,
    RemoteError,
    SubscriptionError,
)

__all__ = [
    "AuthCallback",
    "AuthClient",
    "AuthError",
    "AuthEvent",
    "AuthSubscription",
    "ChangeCallback",
    "ChangeEvent",
    "ChangeType",
    "Channel",
    "RemoteDataClient",
    "RemoteDataError",
    "RemoteError",
    "Row",
    "SubscriptionError",
]
