"""Tests for scheduler implementations."""

from __future__ import annotations

import asyncio
import threading

import pytest

from formpipe.pipeline.schedulers import (
    ExecutorScheduler,
    ImmediateScheduler,
    LoopScheduler,
    SchedulerProvider,
)


class TestImmediateScheduler:
    async def test_runs_inline(self) -> None:
        assert await ImmediateScheduler().run(lambda a, b: a + b, 2, 3) == 5


class TestExecutorScheduler:
    async def test_runs_off_loop_thread(self) -> None:
        provider = SchedulerProvider.default(max_workers=1)
        try:
            name = await provider.io.run(lambda: threading.current_thread().name)
        finally:
            provider.shutdown()
        assert name.startswith("formpipe-io")

    async def test_propagates_exceptions(self) -> None:
        provider = SchedulerProvider.default(max_workers=1)

        def boom() -> None:
            raise KeyError("missing")

        try:
            with pytest.raises(KeyError):
                await provider.computation.run(boom)
        finally:
            provider.shutdown()


class TestLoopScheduler:
    async def test_same_loop(self) -> None:
        scheduler = LoopScheduler()
        assert await scheduler.run(str.upper, "ui") == "UI"

    async def test_same_loop_exception(self) -> None:
        def boom() -> None:
            raise ValueError("render failed")

        with pytest.raises(ValueError, match="render failed"):
            await LoopScheduler().run(boom)

    async def test_hops_to_target_loop(self) -> None:
        ui_loop = asyncio.get_running_loop()
        ui_thread = threading.get_ident()
        seen: list[int] = []

        def in_other_loop() -> None:
            async def main() -> None:
                await LoopScheduler(ui_loop).run(lambda: seen.append(threading.get_ident()))

            asyncio.run(main())

        await asyncio.to_thread(in_other_loop)
        assert seen == [ui_thread]


class TestSchedulerProvider:
    def test_trampoline_is_immediate(self) -> None:
        provider = SchedulerProvider.trampoline()
        assert isinstance(provider.io, ImmediateScheduler)
        assert isinstance(provider.ui, ImmediateScheduler)
        provider.shutdown()

    def test_default_layout(self) -> None:
        provider = SchedulerProvider.default()
        assert isinstance(provider.io, ExecutorScheduler)
        assert isinstance(provider.computation, ExecutorScheduler)
        assert isinstance(provider.ui, LoopScheduler)
        provider.shutdown()
