"""Tests for error reporters."""

from __future__ import annotations

import logging

import pytest

from formpipe.pipeline.reporting import (
    CollectingErrorReporter,
    FanOutErrorReporter,
    LoggingErrorReporter,
    safe_report,
)


class _Broken:
    def report(self, error: BaseException) -> None:
        raise RuntimeError("reporter down")


class TestReporters:
    def test_collecting(self) -> None:
        reporter = CollectingErrorReporter()
        error = ValueError("x")
        reporter.report(error)
        assert reporter.errors == [error]

    def test_fan_out_survives_broken_reporter(self) -> None:
        collected = CollectingErrorReporter()
        FanOutErrorReporter(_Broken(), collected).report(KeyError("k"))
        assert len(collected.errors) == 1

    def test_safe_report_swallows_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="formpipe.pipeline.reporting"):
            safe_report(_Broken(), ValueError("x"))
        assert "failed" in caplog.text

    def test_safe_report_without_reporter(self) -> None:
        safe_report(None, ValueError("x"))

    def test_logging_reporter_does_not_raise(self) -> None:
        LoggingErrorReporter("visit").report(ValueError("boom"))
