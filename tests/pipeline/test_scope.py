"""Tests for SubscriptionScope and CancelToken."""

from __future__ import annotations

import asyncio

from formpipe.pipeline.scope import CancelToken, SubscriptionScope
from tests.conftest import settle


async def _forever() -> None:
    await asyncio.Event().wait()


class TestCancelToken:
    def test_cancel(self) -> None:
        token = CancelToken()
        assert token.cancelled is False
        token.cancel()
        assert token.cancelled is True


class TestSubscriptionScope:
    async def test_dispose_cancels_tasks_and_children(self) -> None:
        scope = SubscriptionScope("root")
        child = scope.child("merge#1")
        outer = scope.spawn(_forever(), name="outer")
        inner = child.spawn(_forever(), name="inner")
        await settle(2)
        assert scope.active_tasks == 1
        cancelled = scope.dispose()
        assert set(cancelled) == {outer, inner}
        assert scope.disposed and child.disposed
        await asyncio.gather(*cancelled, return_exceptions=True)
        assert outer.cancelled() and inner.cancelled()

    async def test_dispose_is_idempotent(self) -> None:
        scope = SubscriptionScope()
        scope.spawn(_forever())
        assert len(scope.dispose()) == 1
        assert scope.dispose() == []

    async def test_spawn_after_dispose_is_refused(self) -> None:
        scope = SubscriptionScope()
        scope.dispose()
        assert scope.spawn(_forever()) is None

    async def test_child_of_disposed_scope_is_disposed(self) -> None:
        scope = SubscriptionScope()
        scope.dispose()
        assert scope.child("late").disposed

    async def test_aclose_waits_for_unwinding(self) -> None:
        scope = SubscriptionScope()
        unwound: list[str] = []

        async def cleanup_on_cancel() -> None:
            try:
                await _forever()
            finally:
                await asyncio.sleep(0)
                unwound.append("done")

        scope.spawn(cleanup_on_cancel())
        await settle(2)
        await scope.aclose()
        assert unwound == ["done"]

    async def test_finished_tasks_are_forgotten(self) -> None:
        scope = SubscriptionScope()
        task = scope.spawn(asyncio.sleep(0))
        await task
        await settle(2)
        assert scope.active_tasks == 0
        assert scope.dispose() == []
