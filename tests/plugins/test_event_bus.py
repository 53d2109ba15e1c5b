"""Tests for EventBus: per-form event log and hook delivery."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pluggy
import pytest
from sqlalchemy import select

from formpipe.domain.events import ErrorEvent, RecheckEvent, RenderEvent, event_from_json
from formpipe.infrastructure.database.engine import init_database
from formpipe.infrastructure.database.schema import event_wal
from formpipe.plugins.event_bus import EventBus
from formpipe.plugins.manager import PluginManager

hookimpl = pluggy.HookimplMarker("formpipe")


# ---------------------------------------------------------------------------
# Fake plugins
# ---------------------------------------------------------------------------


class RecordingPlugin:
    """Plugin that records render and error hook calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @hookimpl
    def post_render(self, form_id: str, seq: int, section_uids: list[str]) -> None:
        self.calls.append(
            ("post_render", {"form_id": form_id, "seq": seq, "section_uids": section_uids})
        )

    @hookimpl
    def report_error(
        self, form_id: str | None, seq: int | None, error_type: str, message: str
    ) -> None:
        self.calls.append(("report_error", {"seq": seq, "error_type": error_type}))


class FailingPlugin:
    """Plugin that always raises on post_render."""

    @hookimpl
    def post_render(self, form_id: str, seq: int, section_uids: list[str]) -> None:
        msg = "Plugin exploded!"
        raise RuntimeError(msg)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def pm_with_recorder() -> tuple[PluginManager, RecordingPlugin]:
    pm = PluginManager()
    recorder = RecordingPlugin()
    pm.register(recorder, name="recorder")
    return pm, recorder


@pytest.fixture
def pm_with_failer() -> PluginManager:
    pm = PluginManager()
    pm.register(FailingPlugin(), name="failer")
    return pm


@pytest.fixture
def engine(tmp_path: Path):
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


def _render(seq: int = 1, form_id: str = "visit") -> RenderEvent:
    return RenderEvent(form_id=form_id, seq=seq, section_uids=("s1",))


def _row(engine, event_id: int):
    with engine.connect() as conn:
        return conn.execute(select(event_wal).where(event_wal.c.id == event_id)).fetchone()


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestEvents:
    def test_hook_kwargs_are_event_fields(self) -> None:
        assert _render(seq=3).hook_kwargs() == {
            "form_id": "visit",
            "seq": 3,
            "section_uids": ["s1"],
        }

    def test_event_rebuilt_from_log_payload(self) -> None:
        event = ErrorEvent(form_id="visit", seq=2, error_type="KeyError", message="'f9'")
        assert event_from_json("report_error", event.model_dump_json()) == event

    def test_unknown_hook_name_rejected(self) -> None:
        with pytest.raises(KeyError):
            event_from_json("no_such_hook", "{}")


class TestEventBusLog:
    def test_publish_logs_form_and_seq(self, engine, pm_with_recorder) -> None:
        pm, recorder = pm_with_recorder
        bus = EventBus(engine, pm, sync=True)
        event_id = bus.publish(_render(seq=4))

        row = _row(engine, event_id)
        assert row.hook_name == "post_render"
        assert row.form_id == "visit"
        assert row.seq == 4
        assert row.status == "delivered"
        assert row.completed is not None
        assert recorder.calls == [
            ("post_render", {"form_id": "visit", "seq": 4, "section_uids": ["s1"]})
        ]

    def test_hook_without_implementers_is_skipped(self, engine, pm_with_recorder) -> None:
        pm, _ = pm_with_recorder
        bus = EventBus(engine, pm, sync=True)
        event_id = bus.publish(RecheckEvent(form_id="visit", seq=1, reason="init"))
        assert _row(engine, event_id).status == "skipped"

    def test_error_event_without_seq(self, engine, pm_with_recorder) -> None:
        pm, recorder = pm_with_recorder
        bus = EventBus(engine, pm, sync=True)
        event_id = bus.publish(
            ErrorEvent(form_id=None, error_type="ValueError", message="bad")
        )
        assert _row(engine, event_id).seq is None
        assert recorder.calls == [("report_error", {"seq": None, "error_type": "ValueError"})]

    def test_history_is_ordered_by_seq(self, engine, pm_with_recorder) -> None:
        pm, _ = pm_with_recorder
        bus = EventBus(engine, pm, sync=True)
        bus.publish(_render(seq=2))
        bus.publish(_render(seq=1, form_id="intake"))
        bus.publish(RecheckEvent(form_id="visit", seq=1, reason="init"))
        bus.publish(_render(seq=1))

        history = bus.history("visit")
        assert [(h["seq"], h["hook_name"]) for h in history] == [
            (1, "post_recheck"),
            (1, "post_render"),
            (2, "post_render"),
        ]

    def test_background_delivery_finishes_on_shutdown(self, engine, pm_with_recorder) -> None:
        pm, recorder = pm_with_recorder
        bus = EventBus(engine, pm, sync=False)
        bus.publish(_render())
        bus.shutdown()
        assert len(recorder.calls) == 1


class TestEventBusFailures:
    def test_failed_hook_records_error(self, engine, pm_with_failer) -> None:
        bus = EventBus(engine, pm_with_failer, sync=True)
        event_id = bus.publish(_render())

        row = _row(engine, event_id)
        assert row.status == "failed"
        assert "Plugin exploded!" in row.error
        assert row.completed is None

    def test_failure_does_not_raise(self, engine, pm_with_failer) -> None:
        bus = EventBus(engine, pm_with_failer, sync=True)
        bus.publish(_render(seq=1))
        bus.publish(_render(seq=2))
        assert [h["status"] for h in bus.history("visit")] == ["failed", "failed"]

    def test_replay_redelivers_failed_in_seq_order(
        self, engine, pm_with_failer, pm_with_recorder
    ) -> None:
        failing = EventBus(engine, pm_with_failer, sync=True)
        failing.publish(_render(seq=2))
        failing.publish(_render(seq=1))

        pm, recorder = pm_with_recorder
        results = EventBus(engine, pm, sync=True).replay()

        assert [(r["seq"], r["status"]) for r in results] == [(1, "delivered"), (2, "delivered")]
        assert [c[1]["seq"] for c in recorder.calls] == [1, 2]

    def test_replay_filters_by_form(self, engine, pm_with_failer, pm_with_recorder) -> None:
        failing = EventBus(engine, pm_with_failer, sync=True)
        failing.publish(_render(form_id="visit"))
        failing.publish(_render(form_id="intake"))

        pm, recorder = pm_with_recorder
        results = EventBus(engine, pm, sync=True).replay(form_id="intake")

        assert len(results) == 1
        assert recorder.calls[0][1]["form_id"] == "intake"

    def test_replay_skips_delivered(self, engine, pm_with_recorder) -> None:
        pm, _ = pm_with_recorder
        bus = EventBus(engine, pm, sync=True)
        bus.publish(_render())
        assert bus.replay() == []
