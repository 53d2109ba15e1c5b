"""Positional pairing of two independently timed producers.

The Nth item of the left producer is combined only with the Nth item of the
right producer. Whichever side runs ahead has its items held in its own
buffer until the partner catches up: no item is dropped or coalesced, and
buffers are bounded only by memory.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Callable
from typing import Any, Generic, TypeVar

from formpipe.pipeline.errors import ProducerFailure

logger = logging.getLogger(__name__)

L = TypeVar("L")
R = TypeVar("R")

_ITEM = "item"
_ERROR = "error"
_DONE = "done"


class PairingBuffer(Generic[L, R]):
    """One FIFO per producer; completed pairs are drained on every push."""

    def __init__(self) -> None:
        self._left: deque[L] = deque()
        self._right: deque[R] = deque()

    @property
    def pending_left(self) -> int:
        return len(self._left)

    @property
    def pending_right(self) -> int:
        return len(self._right)

    def push_left(self, item: L) -> list[tuple[L, R]]:
        self._left.append(item)
        return self._drain()

    def push_right(self, item: R) -> list[tuple[L, R]]:
        self._right.append(item)
        return self._drain()

    def _drain(self) -> list[tuple[L, R]]:
        pairs: list[tuple[L, R]] = []
        while self._left and self._right:
            pairs.append((self._left.popleft(), self._right.popleft()))
        return pairs


async def _pump(side: str, iterator: AsyncIterator[Any], queue: asyncio.Queue) -> None:
    try:
        async for item in iterator:
            queue.put_nowait((side, _ITEM, item))
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        queue.put_nowait((side, _ERROR, exc))
    else:
        queue.put_nowait((side, _DONE, None))


async def _close(iterator: AsyncIterator[Any]) -> None:
    aclose = getattr(iterator, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception:
        logger.debug("Error while closing producer", exc_info=True)


async def zip_streams(
    left: AsyncIterator[L],
    right: AsyncIterator[R],
    *,
    left_name: str = "left",
    right_name: str = "right",
    on_subscribed: Callable[[], None] | None = None,
) -> AsyncIterator[tuple[L, R]]:
    """Yield positional pairs from *left* and *right* as they complete.

    *on_subscribed* is called once both producers have taken their first
    step, i.e. both are subscribed.

    Ends when a finished producer has nothing left to pair. Raises
    :class:`ProducerFailure` as soon as either producer raises. Both
    producers are cancelled and closed when the iteration stops for any
    reason, including cancellation of the consuming task.
    """
    queue: asyncio.Queue[tuple[str, str, Any]] = asyncio.Queue()
    buffer: PairingBuffer[L, R] = PairingBuffer()
    names = {"left": left_name, "right": right_name}
    done = {"left": False, "right": False}

    pumps = [
        asyncio.create_task(_pump("left", left, queue), name=f"pump:{left_name}"),
        asyncio.create_task(_pump("right", right, queue), name=f"pump:{right_name}"),
    ]
    try:
        # Pumps were scheduled first, so one yield lets both start.
        await asyncio.sleep(0)
        if on_subscribed is not None:
            on_subscribed()
        while True:
            if (done["left"] and not buffer.pending_left) or (
                done["right"] and not buffer.pending_right
            ):
                return
            side, kind, payload = await queue.get()
            if kind == _ERROR:
                raise ProducerFailure(names[side], payload) from payload
            if kind == _DONE:
                done[side] = True
                logger.debug("Producer %s completed", names[side])
                continue
            pairs = buffer.push_left(payload) if side == "left" else buffer.push_right(payload)
            for pair in pairs:
                yield pair
    finally:
        for pump in pumps:
            pump.cancel()
        await asyncio.gather(*pumps, return_exceptions=True)
        await _close(left)
        await _close(right)
