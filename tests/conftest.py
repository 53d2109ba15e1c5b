"""Shared pytest fixtures and test helpers for formpipe tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from formpipe.domain.effects import EvaluationResult
from formpipe.domain.sections import FieldViewModel, SectionViewModel
from formpipe.infrastructure.store import FormStore


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    """Directory holding the temporary form store."""
    return tmp_path


@pytest.fixture
def store(store_root: Path) -> FormStore:
    """Initialized, empty form store on a temp directory."""
    s = FormStore(store_root)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def _isolated_store(store_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp directory so the CLI opens an isolated store.

    Use via ``@pytest.mark.usefixtures("_isolated_store")`` on command test
    classes.
    """
    monkeypatch.delenv("FORMPIPE_CONFIG", raising=False)
    monkeypatch.chdir(store_root)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def section(uid: str, *field_uids: str, order: int = 0) -> SectionViewModel:
    """Build a section snapshot with plain fields."""
    return SectionViewModel(
        section_uid=uid,
        label=uid.upper(),
        order=order,
        fields=tuple(FieldViewModel(uid=f, label=f, section_uid=uid) for f in field_uids),
    )


def build_form(store: FormStore, form_id: str = "visit", **kwargs: Any) -> str:
    """Create a form with sections s1 (f1, f2) and s2 (f3)."""
    store.create_form(form_id, "Household visit", **kwargs)
    store.add_section(form_id, "s1", label="Household")
    store.add_section(form_id, "s2", label="Members")
    store.add_field(form_id, "f1", "s1", label="Name", mandatory=True)
    store.add_field(form_id, "f2", "s1", label="Village")
    store.add_field(form_id, "f3", "s2", label="Age")
    return form_id


async def settle(rounds: int = 50) -> None:
    """Let every ready task on the loop run a few times."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* until it holds or *timeout* elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            msg = "condition not reached before timeout"
            raise AssertionError(msg)
        await asyncio.sleep(0.001)


_END = object()


class LiveStream:
    """Test-controlled producer.

    Every subscription first replays ``initial`` and then yields whatever the
    test pushes. Pushing an exception makes the live subscriptions raise it.
    """

    def __init__(self, initial: Sequence[Any] = (), *, finite: bool = False) -> None:
        self.initial = list(initial)
        self.finite = finite
        self.subscriptions = 0
        self.active = 0
        self._queues: list[asyncio.Queue[Any]] = []

    async def _stream(self, form_id: str) -> AsyncIterator[Any]:
        queue: asyncio.Queue[Any] = asyncio.Queue()
        self._queues.append(queue)
        self.subscriptions += 1
        self.active += 1
        try:
            for item in self.initial:
                yield self._unwrap(item)
            if self.finite:
                return
            while True:
                item = await queue.get()
                if item is _END:
                    return
                yield self._unwrap(item)
        finally:
            self.active -= 1
            self._queues.remove(queue)

    @staticmethod
    def _unwrap(item: Any) -> Any:
        if isinstance(item, BaseException):
            raise item
        return item

    def push(self, item: Any) -> None:
        for queue in list(self._queues):
            queue.put_nowait(item)

    def end(self) -> None:
        self.push(_END)


class FakeSectionSource(LiveStream):
    def snapshots(self, form_id: str) -> AsyncIterator[Sequence[SectionViewModel]]:
        return self._stream(form_id)


class FakeRuleEvaluator(LiveStream):
    def evaluate(self, form_id: str) -> AsyncIterator[EvaluationResult]:
        return self._stream(form_id)


class RecordingSink:
    """Sink that keeps every delivered section list."""

    def __init__(self) -> None:
        self.renders: list[list[SectionViewModel]] = []

    def render(self, sections: Sequence[SectionViewModel]) -> None:
        self.renders.append(list(sections))

    @property
    def last_uids(self) -> list[str]:
        return [s.section_uid for s in self.renders[-1]]
