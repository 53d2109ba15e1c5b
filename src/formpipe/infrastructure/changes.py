"""In-process change notification for forms.

Writers call :meth:`ChangeFeed.notify` after committing; every watcher of
that form wakes on its own event loop. Watchers may also poll on an interval
so writes made by another process are picked up.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


class _Watcher:
    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._event = asyncio.Event()

    def wake(self) -> None:
        try:
            self._loop.call_soon_threadsafe(self._event.set)
        except RuntimeError:
            logger.debug("Watcher loop closed; wake ignored")

    async def wait(self, timeout: float | None) -> None:
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except TimeoutError:
            pass
        self._event.clear()


class ChangeFeed:
    """Fan-out of per-form change notifications. Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._watchers: dict[str, set[_Watcher]] = {}

    def notify(self, form_id: str) -> None:
        with self._lock:
            watchers = list(self._watchers.get(form_id, ()))
        for watcher in watchers:
            watcher.wake()

    def watcher_count(self, form_id: str) -> int:
        with self._lock:
            return len(self._watchers.get(form_id, ()))

    async def changes(
        self, form_id: str, *, poll_interval: float | None = None
    ) -> AsyncIterator[None]:
        """Yield once immediately, then once per wake-up or poll tick."""
        watcher = _Watcher(asyncio.get_running_loop())
        with self._lock:
            self._watchers.setdefault(form_id, set()).add(watcher)
        try:
            yield None
            while True:
                await watcher.wait(poll_interval)
                yield None
        finally:
            with self._lock:
                registered = self._watchers.get(form_id)
                if registered is not None:
                    registered.discard(watcher)
                    if not registered:
                        del self._watchers[form_id]
