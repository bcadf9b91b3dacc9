"""Abstractions for the remote data client.

The backend-as-a-service supplies auth, a relational store queryable with
filter predicates, and change-event subscriptions. Everything in this
module describes that boundary; adapters live in sibling packages.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Sequence

from gamenight.core.filters import Filter
from gamenight.domain.entities import Session

Row = dict[str, Any]


class ChangeType(str, Enum):
    """Kinds of change events."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """One row change delivered to a subscriber.

    ``new`` holds the row after insert/update; ``old`` holds at least the key
    of the row before update/delete.
    """

    type: ChangeType
    table: str
    new: Row = field(default_factory=dict)
    old: Row = field(default_factory=dict)

    def key(self, key_field: str = "id") -> Any:
        """Key of the affected row, read from ``new`` then ``old``."""
        if key_field in self.new:
            return self.new[key_field]
        return self.old.get(key_field)


ChangeCallback = Callable[[ChangeEvent], None]


class Channel(ABC):
    """Handle to an open change-event subscription."""

    @property
    @abstractmethod
    def topic(self) -> str:
        ...

    @abstractmethod
    async def unsubscribe(self) -> None:
        """Release the subscription. Safe to call more than once."""
        ...


class AuthEvent(str, Enum):
    """Auth-state notifications."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


AuthCallback = Callable[[AuthEvent, Session | None], None]


class AuthSubscription(ABC):
    """Handle returned by ``on_auth_state_change``."""

    @abstractmethod
    def unsubscribe(self) -> None:
        ...


class AuthClient(ABC):
    """Auth half of the remote data client."""

    @property
    @abstractmethod
    def session(self) -> Session | None:
        """The current session, if signed in."""
        ...

    @abstractmethod
    def on_auth_state_change(self, callback: AuthCallback) -> AuthSubscription:
        """Register for auth-state notifications.

        The callback receives ``INITIAL_SESSION`` with the current session
        shortly after registering, then every later change.
        """
        ...

    @abstractmethod
    def sign_in_with_oauth(self, provider: str, redirect_to: str) -> str:
        """Return the URL that starts the OAuth flow for ``provider``."""
        ...

    @abstractmethod
    async def complete_oauth(self, callback_url: str) -> Session:
        """Adopt the session carried by the OAuth redirect URL."""
        ...

    @abstractmethod
    async def ensure_fresh(self) -> Session | None:
        """Refresh the session if its access token is about to expire."""
        ...

    @abstractmethod
    def sign_out_locally(self) -> None:
        """Forget the session without contacting the auth service."""
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        ...


class RemoteDataClient(ABC):
    """Query, write and change-event operations against named tables.

    Filters are ANDed. ``columns`` is a projection string such as
    ``*,players(name)``.
    """

    auth: AuthClient

    @abstractmethod
    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        limit: int | None = None,
    ) -> list[Row]:
        ...

    async def select_one(
        self,
        table: str,
        columns: str = "*",
        filters: Sequence[Filter] = (),
    ) -> Row | None:
        """Fetch at most one row; None when nothing matches."""
        rows = await self.select(table, columns=columns, filters=filters, limit=1)
        return rows[0] if rows else None

    @abstractmethod
    async def insert(self, table: str, values: Mapping[str, Any]) -> list[Row]:
        ...

    @abstractmethod
    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        filters: Sequence[Filter],
    ) -> list[Row]:
        ...

    @abstractmethod
    async def upsert(
        self,
        table: str,
        values: Mapping[str, Any],
        on_conflict: str,
    ) -> list[Row]:
        ...

    @abstractmethod
    async def delete(self, table: str, filters: Sequence[Filter]) -> list[Row]:
        ...

    @abstractmethod
    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        filter: str | None = None,
    ) -> Channel:
        """Open a change subscription on ``table``.

        Returns once the backend has confirmed the subscription.

        Raises:
            SubscriptionError: If the backend refuses the join.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        return None
