"""RecheckTrigger: manually fed channel of recheck requests.

Opening the channel enqueues one implicit ``init`` signal ahead of anything a
caller sends, so the merge always runs at least once per attach. Every
request is an independent signal: nothing is debounced or coalesced.

INVARIANT: ``request_recheck`` is safe from any thread. Writes from a thread
other than the owning loop are handed over with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from collections.abc import AsyncIterator

from pydantic import BaseModel

logger = logging.getLogger(__name__)

INIT_REASON = "init"
CHECK_REASON = "check"

_CLOSED = object()


class RecheckSignal(BaseModel):
    """One recheck request. ``seq`` increases monotonically per trigger."""

    model_config = {"frozen": True}

    reason: str
    seq: int


class RecheckTrigger:
    """Signal channel read only by the owning pipeline's restart loop."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seq = itertools.count(1)
        self._queue: asyncio.Queue[object] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._queue is not None

    def open(self) -> None:
        """Bind to the running loop and enqueue the implicit ``init`` signal."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._queue is not None:
                return
            self._loop = loop
            self._queue = asyncio.Queue()
            self._queue.put_nowait(self._next(INIT_REASON))

    def request_recheck(self, reason: str = CHECK_REASON) -> bool:
        """Enqueue a signal. Returns False if the channel is closed."""
        with self._lock:
            if self._queue is None or self._loop is None:
                logger.debug("Recheck %r dropped: trigger is closed", reason)
                return False
            return self._put(self._next(reason))

    def close(self) -> None:
        """Terminate the channel; later requests are dropped."""
        with self._lock:
            if self._queue is None:
                return
            self._put(_CLOSED)
            self._queue = None
            self._loop = None

    async def signals(self) -> AsyncIterator[RecheckSignal]:
        """Iterate signals until :meth:`close` is called."""
        with self._lock:
            queue = self._queue
        if queue is None:
            return
        while True:
            item = await queue.get()
            if item is _CLOSED:
                return
            assert isinstance(item, RecheckSignal)
            yield item

    def _next(self, reason: str) -> RecheckSignal:
        return RecheckSignal(reason=reason, seq=next(self._seq))

    def _put(self, item: object) -> bool:
        """Hand *item* to the queue on its own loop. Caller holds the lock."""
        assert self._queue is not None and self._loop is not None
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._queue.put_nowait(item)
            return True
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            logger.debug("Recheck dropped: owning loop is closed")
            return False
        return True
