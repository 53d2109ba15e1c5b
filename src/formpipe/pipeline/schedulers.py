"""Execution contexts injected into the pipeline.

Three logical contexts: ``io`` for storage reads and writes, ``computation``
for rule evaluation and effect application, and ``ui`` for serialized sink
delivery. The pipeline never owns these; callers build a
:class:`SchedulerProvider` and pass it in.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

_T = TypeVar("_T")


class Scheduler(Protocol):
    """Runs a plain callable on some execution context."""

    async def run(self, fn: Callable[..., _T], *args: Any) -> _T: ...


class ImmediateScheduler:
    """Runs the callable inline on the calling task (trampoline)."""

    async def run(self, fn: Callable[..., _T], *args: Any) -> _T:
        return fn(*args)


class ExecutorScheduler:
    """Runs the callable on a thread pool via ``loop.run_in_executor``."""

    def __init__(self, executor: ThreadPoolExecutor) -> None:
        self._executor = executor

    async def run(self, fn: Callable[..., _T], *args: Any) -> _T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


class LoopScheduler:
    """Runs the callable on a specific event loop (the presentation loop).

    Calls are queued with ``call_soon_threadsafe`` so they are serialized on
    that loop no matter which thread or loop awaits the result.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    async def run(self, fn: Callable[..., _T], *args: Any) -> _T:
        running = asyncio.get_running_loop()
        target = self._loop or running
        if target is running:
            future: asyncio.Future[_T] = running.create_future()

            def _call() -> None:
                if future.cancelled():
                    return
                try:
                    future.set_result(fn(*args))
                except Exception as exc:
                    future.set_exception(exc)

            running.call_soon(_call)
            return await future

        async def _invoke() -> _T:
            return fn(*args)

        concurrent = asyncio.run_coroutine_threadsafe(_invoke(), target)
        return await asyncio.wrap_future(concurrent)


@dataclass(frozen=True)
class SchedulerProvider:
    """Bundle of the three execution contexts."""

    io: Scheduler
    computation: Scheduler
    ui: Scheduler

    @classmethod
    def trampoline(cls) -> SchedulerProvider:
        """Everything inline on the running loop (tests, CLI one-shots)."""
        immediate = ImmediateScheduler()
        return cls(io=immediate, computation=immediate, ui=immediate)

    @classmethod
    def default(
        cls,
        *,
        max_workers: int = 4,
        ui_loop: asyncio.AbstractEventLoop | None = None,
    ) -> SchedulerProvider:
        """Thread pools for io and computation, the given loop for ui."""
        return cls(
            io=ExecutorScheduler(
                ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="formpipe-io")
            ),
            computation=ExecutorScheduler(
                ThreadPoolExecutor(max_workers=1, thread_name_prefix="formpipe-compute")
            ),
            ui=LoopScheduler(ui_loop),
        )

    def shutdown(self) -> None:
        """Shut down any thread pools this provider created."""
        seen: set[int] = set()
        for scheduler in (self.io, self.computation, self.ui):
            if id(scheduler) in seen:
                continue
            seen.add(id(scheduler))
            if isinstance(scheduler, ExecutorScheduler):
                scheduler.shutdown()
