"""SubscriptionScope: an arena of live subscriptions released together.

Every asyncio task the pipeline starts is spawned through a scope. Disposing
a scope cancels its liveness token first (so any delivery already queued on
another context sees a dead token) and then cancels its tasks and child
scopes. Disposal is synchronous and idempotent.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class CancelToken:
    """Liveness flag shared between a scope and the deliveries it guards."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class SubscriptionScope:
    """Tracks tasks and child scopes; ``dispose()`` releases all of them.

    Usage::

        scope = SubscriptionScope("pipeline")
        merge = scope.child("merge#1")
        merge.spawn(run_merge(merge.token))
        ...
        scope.dispose()  # cancels merge#1 and everything else
    """

    def __init__(self, name: str = "scope") -> None:
        self.name = name
        self.token = CancelToken()
        self._lock = threading.Lock()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._children: list[SubscriptionScope] = []

    @property
    def disposed(self) -> bool:
        return self.token.cancelled

    @property
    def active_tasks(self) -> int:
        with self._lock:
            return sum(1 for t in self._tasks if not t.done())

    def spawn(
        self, coro: Coroutine[Any, Any, Any], *, name: str | None = None
    ) -> asyncio.Task[Any] | None:
        """Start *coro* as a task owned by this scope.

        Returns None (and closes the coroutine) if the scope is already disposed.
        """
        if self.disposed:
            coro.close()
            logger.debug("Scope %s disposed; not spawning %s", self.name, name)
            return None
        task = asyncio.get_running_loop().create_task(coro, name=name)
        with self._lock:
            self._tasks.add(task)
        task.add_done_callback(self._forget)
        return task

    def child(self, name: str) -> SubscriptionScope:
        """Create a nested scope disposed together with this one."""
        scope = SubscriptionScope(name)
        if self.disposed:
            scope.dispose()
            return scope
        with self._lock:
            self._children = [c for c in self._children if not c.disposed]
            self._children.append(scope)
        return scope

    def dispose(self) -> list[asyncio.Task[Any]]:
        """Cancel the token, child scopes and tasks. Returns the cancelled tasks."""
        self.token.cancel()
        with self._lock:
            children = list(self._children)
            tasks = list(self._tasks)
            self._children.clear()
            self._tasks.clear()

        cancelled: list[asyncio.Task[Any]] = []
        for scope in children:
            cancelled.extend(scope.dispose())
        for task in tasks:
            if not task.done():
                task.cancel()
                cancelled.append(task)
        if cancelled:
            logger.debug("Scope %s disposed %d task(s)", self.name, len(cancelled))
        return cancelled

    async def aclose(self) -> None:
        """Dispose and wait until every cancelled task has actually finished."""
        tasks = self.dispose()
        current = asyncio.current_task()
        pending = [t for t in tasks if t is not current]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _forget(self, task: asyncio.Task[Any]) -> None:
        with self._lock:
            self._tasks.discard(task)
