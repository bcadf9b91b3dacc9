"""Single-row live watcher.

Fetches one row by key and keeps it current from change events scoped to
that key.
"""

import asyncio
from typing import Any, Generic, TypeVar

from gamenight.application.watcher import Watcher
from gamenight.core.filters import Filter
from gamenight.core.logging import get_logger
from gamenight.domain.tables import Table
from gamenight.infrastructure.remote import (
    ChangeEvent,
    ChangeType,
    Channel,
    RemoteDataClient,
    RemoteDataError,
    RemoteError,
)

logger = get_logger(__name__)

T = TypeVar("T")


class LiveRow(Watcher, Generic[T]):
    """Live view of the row of ``table`` whose key is ``key``.

    Without a key the watcher settles to ``row=None`` and does nothing else.
    Insert and update events replace the row unconditionally; delete clears it.
    """

    def __init__(self, remote: RemoteDataClient, table: Table[T], key: Any = None) -> None:
        super().__init__(f"row:{table.name}")
        self.remote = remote
        self.table = table
        self.key = key
        self.row: T | None = None
        self._started = False

    def start(self) -> None:
        self._started = True
        self._open(self.key)

    def set_key(self, key: Any) -> None:
        if self._started and key == self.key:
            return
        self.key = key
        if self._started:
            self._open(key)

    def _open(self, key: Any) -> None:
        if key is None or key == "":
            self._replace_task(None)
            self._set(row=None, error=None, is_loading=False)
            self._mark_settled()
            return

        self.is_loading = True
        self._replace_task(lambda superseded: self._run_scope(key, superseded))
        self._notify()

    def _set(self, row: T | None, error: Exception | None, is_loading: bool) -> None:
        changed = row != self.row or error is not self.error or is_loading != self.is_loading
        self.row = row
        self.error = error
        self.is_loading = is_loading
        if changed:
            self._notify()

    async def _run_scope(self, key: Any, superseded: list[asyncio.Task]) -> None:
        await self._wait_for(superseded)

        predicate = Filter.eq(self.table.key, key)
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        fetch = asyncio.create_task(self._fetch(predicate))
        channel: Channel | None = None
        try:
            try:
                channel = await self.remote.subscribe(
                    self.table.name, queue.put_nowait, filter=predicate.to_expression()
                )
                self.is_live = True
                logger.debug("Subscribed to row", table=self.table.name, key=key)
            except RemoteError as e:
                logger.error(
                    "Change subscription failed; row will not update",
                    table=self.table.name,
                    key=key,
                    error=str(e),
                )

            row, error = await fetch
            self._set(row=row, error=error, is_loading=False)
            self._mark_settled()

            if channel is None:
                return
            while True:
                event = await queue.get()
                self._apply(key, event)
        finally:
            fetch.cancel()
            self.is_live = False
            if channel is not None:
                await channel.unsubscribe()
                logger.debug("Unsubscribed from row", table=self.table.name, key=key)

    async def _fetch(self, predicate: Filter) -> tuple[T | None, Exception | None]:
        try:
            data = await self.remote.select_one(self.table.name, filters=(predicate,))
        except RemoteDataError as e:
            logger.error("Fetching row failed", table=self.table.name, error=str(e), kind=e.kind)
            return None, e
        if data is None:
            return None, None
        try:
            return self.table.parse(data), None
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Dropping malformed row", table=self.table.name, error=str(e))
            return None, None

    def _apply(self, key: Any, event: ChangeEvent) -> None:
        if str(event.key(self.table.key)) != str(key):
            return
        if event.type is ChangeType.DELETE:
            self._set(row=None, error=self.error, is_loading=self.is_loading)
            return
        try:
            row = self.table.parse(event.new)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Dropping malformed row", table=self.table.name, error=str(e))
            return
        self._set(row=row, error=self.error, is_loading=self.is_loading)
