"""Row-set live watcher.

Fetches the rows of a table matching a scope and keeps them current from
change events scoped by the scope's change filter.
"""

import asyncio
from typing import Any, Generic, TypeVar

from gamenight.application.scope import ALL_ROWS, DISABLED, RowFilters, Scope
from gamenight.application.watcher import Watcher
from gamenight.core.filters import Filter
from gamenight.core.logging import get_logger
from gamenight.domain.services import apply_delete, apply_insert, apply_update, dedupe
from gamenight.domain.tables import Table
from gamenight.infrastructure.remote import (
    ChangeEvent,
    ChangeType,
    Channel,
    RemoteDataClient,
    RemoteDataError,
    RemoteError,
    Row,
)

logger = get_logger(__name__)

T = TypeVar("T")


class LiveRows(Watcher, Generic[T]):
    """Live, filtered row set of one table.

    Attributes:
        table: Descriptor of the watched table.
        projection: Select string applied to fetches, e.g. ``*,players(name)``.
        rows: Current cache, in fetch order followed by insert order.
        is_loading: True until the current scope's initial fetch lands.
        error: Error from the last initial fetch, if it failed.
        is_live: True while the change subscription is open.
    """

    def __init__(
        self,
        remote: RemoteDataClient,
        table: Table[T],
        scope: Scope = ALL_ROWS,
        projection: str | None = None,
    ) -> None:
        super().__init__(f"rows:{table.name}")
        self.remote = remote
        self.table = table
        self.projection = projection
        self.scope: Scope = scope
        self.rows: tuple[T, ...] = ()
        self._raw: dict[Any, Row] = {}
        self._started = False

    def start(self) -> None:
        self._started = True
        self._open(self.scope)

    def set_scope(self, scope: Scope) -> None:
        """Switch to a new scope; a scope equal to the current one is a no-op."""
        if self._started and scope == self.scope:
            return
        self.scope = scope
        if self._started:
            self._open(scope)

    def _open(self, scope: Scope) -> None:
        if scope is DISABLED:
            self._replace_task(None)
            self._set(rows=(), raw={}, error=None, is_loading=False)
            self._mark_settled()
            return

        self.is_loading = True
        self._replace_task(lambda superseded: self._run_scope(scope, superseded))
        self._notify()

    def _set(
        self,
        rows: tuple[T, ...],
        raw: dict[Any, Row],
        error: Exception | None,
        is_loading: bool,
    ) -> None:
        changed = (
            rows is not self.rows
            or error is not self.error
            or is_loading != self.is_loading
        )
        self.rows = rows
        self._raw = raw
        self.error = error
        self.is_loading = is_loading
        if changed:
            self._notify()

    async def _run_scope(self, scope: RowFilters, superseded: list[asyncio.Task]) -> None:
        await self._wait_for(superseded)

        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        # Issued before subscribing; events that arrive first wait in the queue
        fetch = asyncio.create_task(self._fetch(scope))
        channel: Channel | None = None
        try:
            try:
                channel = await self.remote.subscribe(
                    self.table.name, queue.put_nowait, filter=scope.change
                )
                self.is_live = True
                logger.debug("Subscribed to table", table=self.table.name, filter=scope.change)
            except RemoteError as e:
                logger.error(
                    "Change subscription failed; rows will not update",
                    table=self.table.name,
                    filter=scope.change,
                    error=str(e),
                )

            rows, raw, error = await fetch
            self._set(rows=rows, raw=raw, error=error, is_loading=False)
            self._mark_settled()

            if channel is None:
                return
            while True:
                event = await queue.get()
                await self._apply(event)
        finally:
            fetch.cancel()
            self.is_live = False
            if channel is not None:
                await channel.unsubscribe()
                logger.debug("Unsubscribed from table", table=self.table.name, filter=scope.change)

    async def _fetch(self, scope: RowFilters) -> tuple[tuple[T, ...], dict[Any, Row], Exception | None]:
        try:
            data = await self.remote.select(
                self.table.name,
                columns=self.projection or "*",
                filters=scope.initial,
            )
        except RemoteDataError as e:
            logger.error("Fetching rows failed", table=self.table.name, error=str(e), kind=e.kind)
            return (), {}, e

        parsed = [(row, self._parse(row)) for row in data]
        entities = dedupe((entity for _, entity in parsed if entity is not None), self.table.key_of)
        raw = {self.table.row_key(row): row for row, entity in parsed if entity is not None}
        return entities, raw, None

    def _parse(self, row: Row) -> T | None:
        try:
            return self.table.parse(row)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Dropping malformed row", table=self.table.name, error=str(e))
            return None

    async def _apply(self, event: ChangeEvent) -> None:
        key = event.key(self.table.key)
        if key is None:
            return

        if event.type is ChangeType.DELETE:
            rows = apply_delete(self.rows, key, self.table.key_of)
            raw = {k: v for k, v in self._raw.items() if k != key}
            self._set(rows=rows, raw=raw, error=self.error, is_loading=self.is_loading)
            return

        if event.type is ChangeType.UPDATE:
            if key not in self._raw:
                # Not in this cache; no resync is attempted
                return
            merged = {**self._raw[key], **event.new}
            entity = self._parse(merged)
            if entity is None:
                return
            rows = apply_update(self.rows, entity, self.table.key_of)
            self._set(rows=rows, raw={**self._raw, key: merged}, error=self.error, is_loading=self.is_loading)
            return

        if key in self._raw:
            return
        row = await self._projected(key) if self.projection else event.new
        if row is None:
            return
        entity = self._parse(row)
        if entity is None:
            return
        rows = apply_insert(self.rows, entity, self.table.key_of)
        self._set(rows=rows, raw={**self._raw, key: row}, error=self.error, is_loading=self.is_loading)

    async def _projected(self, key: Any) -> Row | None:
        """Re-fetch an inserted row with the projection's joined fields."""
        try:
            return await self.remote.select_one(
                self.table.name,
                columns=self.projection,
                filters=(Filter.eq(self.table.key, key),),
            )
        except RemoteDataError as e:
            logger.warning(
                "Fetching inserted row failed",
                table=self.table.name,
                key=key,
                error=str(e),
            )
            return None
