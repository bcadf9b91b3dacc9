"""Remote data client backed by a Supabase-compatible backend."""

import asyncio
from typing import Any, Mapping, Sequence

import httpx

from gamenight.core.config import Settings
from gamenight.core.filters import Filter
from gamenight.core.logging import get_logger
from gamenight.domain.entities import Session
from gamenight.infrastructure.remote.base import (
    AuthEvent,
    ChangeCallback,
    Channel,
    RemoteDataClient,
    Row,
)
from gamenight.infrastructure.remote.supabase.auth import SupabaseAuthClient
from gamenight.infrastructure.remote.supabase.realtime import RealtimeClient
from gamenight.infrastructure.remote.supabase.rest import SupabaseRestClient
from gamenight.infrastructure.remote.supabase.session_store import SessionStore

logger = get_logger(__name__)


class SupabaseClient(RemoteDataClient):
    """Facade over the auth, REST and realtime adapters.

    The REST and realtime adapters read the bearer token from the auth
    adapter on every call, so a sign-in or refresh takes effect immediately.
    """

    def __init__(
        self,
        auth: SupabaseAuthClient,
        rest: SupabaseRestClient,
        realtime: RealtimeClient,
    ) -> None:
        self.auth = auth
        self.rest = rest
        self.realtime = realtime
        self._token_listener = auth.on_auth_state_change(self._on_auth_change)
        self._background: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "SupabaseClient":
        auth = SupabaseAuthClient(
            settings.auth_url,
            settings.supabase_anon_key,
            store=SessionStore(settings.session_file),
            timeout=settings.request_timeout,
            transport=transport,
        )
        rest = SupabaseRestClient(
            settings.rest_url,
            settings.supabase_anon_key,
            token_provider=auth.access_token,
            timeout=settings.request_timeout,
            transport=transport,
        )
        realtime = RealtimeClient(
            settings.realtime_url,
            settings.supabase_anon_key,
            token_provider=auth.access_token,
            heartbeat_interval=settings.realtime_heartbeat_interval,
            join_timeout=settings.realtime_join_timeout,
        )
        return cls(auth, rest, realtime)

    def _on_auth_change(self, event: AuthEvent, session: Session | None) -> None:
        if event not in (AuthEvent.SIGNED_IN, AuthEvent.TOKEN_REFRESHED) or session is None:
            return
        if not self.realtime.is_connected:
            return
        task = asyncio.get_running_loop().create_task(self.realtime.set_auth(session.access_token))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        limit: int | None = None,
    ) -> list[Row]:
        return await self.rest.select(table, columns=columns, filters=filters, limit=limit)

    async def insert(self, table: str, values: Mapping[str, Any]) -> list[Row]:
        return await self.rest.insert(table, values)

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        filters: Sequence[Filter],
    ) -> list[Row]:
        return await self.rest.update(table, values, filters)

    async def upsert(
        self,
        table: str,
        values: Mapping[str, Any],
        on_conflict: str,
    ) -> list[Row]:
        return await self.rest.upsert(table, values, on_conflict)

    async def delete(self, table: str, filters: Sequence[Filter]) -> list[Row]:
        return await self.rest.delete(table, filters)

    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        filter: str | None = None,
    ) -> Channel:
        return await self.realtime.subscribe(table, callback, filter=filter)

    async def aclose(self) -> None:
        self._token_listener.unsubscribe()
        await self.realtime.aclose()
        await self.rest.aclose()
        await self.auth.aclose()
        logger.debug("Remote client closed")
