"""Error reporters for the pipeline's side error channel.

INVARIANT: Reporting is fire-and-forget. A reporter that raises is logged and
otherwise ignored; it never interrupts a merge.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from formpipe.config.logging import pipeline_logger

if TYPE_CHECKING:
    from formpipe.pipeline.protocols import ErrorReporter

logger = logging.getLogger(__name__)


class LoggingErrorReporter:
    """Report errors as structured log events."""

    def __init__(self, form_id: str | None = None) -> None:
        self._log = pipeline_logger("formpipe.errors", form_id)

    def report(self, error: BaseException) -> None:
        self._log.error(
            "pipeline.error",
            error_type=type(error).__name__,
            message=str(error),
            exc_info=error,
        )


class CollectingErrorReporter:
    """Keep reported errors in memory (CLI summaries, tests)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: list[BaseException] = []

    @property
    def errors(self) -> list[BaseException]:
        with self._lock:
            return list(self._errors)

    def report(self, error: BaseException) -> None:
        with self._lock:
            self._errors.append(error)


class FanOutErrorReporter:
    """Forward every report to several reporters."""

    def __init__(self, *reporters: ErrorReporter) -> None:
        self._reporters = reporters

    def report(self, error: BaseException) -> None:
        for reporter in self._reporters:
            safe_report(reporter, error)


def safe_report(reporter: ErrorReporter | None, error: BaseException) -> None:
    """Call ``reporter.report`` without letting it raise."""
    if reporter is None:
        return
    try:
        reporter.report(error)
    except Exception:
        logger.warning("Error reporter %r failed", reporter, exc_info=True)
