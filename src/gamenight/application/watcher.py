"""Shared plumbing for live watchers.

A watcher owns one local cache and serves one scope at a time. Each scope
runs as an asyncio task until cancelled; a new scope waits for every
superseded task to finish its teardown (and release its channel) before it
fetches or subscribes.
"""

import asyncio
from typing import Awaitable, Callable

from gamenight.core.logging import get_logger

logger = get_logger(__name__)


class Watcher:
    """Listener registry, scope-task lifecycle and settle signalling."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.is_loading = True
        self.is_live = False
        self.error: Exception | None = None
        self._listeners: list[Callable[["Watcher"], None]] = []
        self._task: asyncio.Task | None = None
        # Superseded scope tasks still running their teardown
        self._teardowns: set[asyncio.Task] = set()
        self._settled = asyncio.Event()

    def add_listener(self, listener: Callable[["Watcher"], None]) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @property
    def is_settled(self) -> bool:
        return self._settled.is_set()

    async def wait_settled(self) -> None:
        """Wait until the current scope's initial fetch has landed."""
        await self._settled.wait()

    def _mark_settled(self) -> None:
        self._settled.set()

    def _replace_task(self, run: Callable[[list[asyncio.Task]], Awaitable[None]] | None) -> None:
        """Cancel the current scope task and start ``run`` in its place.

        ``run`` receives every superseded task that has not finished yet,
        including ones replaced by earlier rescopes, so it can wait for all
        of their teardowns.
        """
        previous = self._task
        if previous is not None and not previous.done():
            previous.cancel()
            self._teardowns.add(previous)
            previous.add_done_callback(self._teardowns.discard)
        self._settled.clear()
        self.is_live = False
        if run is None:
            self._task = None
            return
        task = asyncio.get_running_loop().create_task(run(list(self._teardowns)))
        task.add_done_callback(self._log_task_failure)
        self._task = task

    def _log_task_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Live watcher scope failed",
                watcher=self.name,
                error=str(exc),
                exc_info=exc,
            )

    @staticmethod
    async def _wait_for(superseded: list[asyncio.Task]) -> None:
        if superseded:
            await asyncio.wait(superseded)

    async def close(self) -> None:
        """Cancel the scope task and wait for its channel to be released."""
        task = self._task
        self._replace_task(None)
        pending = set(self._teardowns)
        if task is not None:
            pending.add(task)
        if pending:
            await asyncio.wait(pending)
        self._listeners.clear()
