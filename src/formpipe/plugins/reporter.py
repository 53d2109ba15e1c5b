"""Error reporter that forwards pipeline errors to ``report_error`` hooks."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from formpipe.domain.events import ErrorEvent
from formpipe.pipeline.reporting import LoggingErrorReporter

if TYPE_CHECKING:
    from formpipe.plugins.event_bus import EventBus

logger = logging.getLogger(__name__)


class PluginErrorReporter:
    """Log the error, then publish it as an :class:`ErrorEvent`.

    *seq* is read at report time so errors are filed under the recheck
    signal that was current when they happened.
    """

    def __init__(
        self,
        bus: EventBus,
        form_id: str | None = None,
        seq: Callable[[], int | None] | None = None,
    ) -> None:
        self._bus = bus
        self._form_id = form_id
        self._seq = seq
        self._log = LoggingErrorReporter(form_id)

    def report(self, error: BaseException) -> None:
        self._log.report(error)
        event = ErrorEvent(
            form_id=self._form_id,
            seq=self._seq() if self._seq is not None else None,
            error_type=type(error).__name__,
            message=str(error),
        )
        try:
            self._bus.publish(event)
        except Exception:
            logger.warning("report_error publish failed", exc_info=True)
