"""One-shot form streams: title, dates, date pickers, status and coordinates.

These sit beside the merge pipeline and share its lifetime. Reads run on the
io scheduler and render on the ui scheduler; view changes are written
through to the repository on the io scheduler. Every failure goes to the
error reporter and never reaches the view.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from formpipe.domain.dates import (
    DATABASE_DATE_FORMAT,
    UI_DATE_FORMAT,
    to_database_date,
    to_ui_date,
)
from formpipe.domain.lifecycle import FormKind, ReportStatus
from formpipe.pipeline.errors import LoaderError
from formpipe.pipeline.reporting import LoggingErrorReporter, safe_report
from formpipe.pipeline.schedulers import SchedulerProvider

if TYPE_CHECKING:
    import asyncio

    from formpipe.pipeline.protocols import ErrorReporter, FormRepository
    from formpipe.pipeline.scope import SubscriptionScope

logger = logging.getLogger(__name__)


class FormView(Protocol):
    """Presentation callbacks for the one-shot streams. All are optional."""

    def render_title(self, title: str) -> None: ...

    def render_report_date(self, value: str) -> None: ...

    def render_incident_date(self, value: str) -> None: ...

    def init_report_date_picker(
        self, allow_future_report: bool, allow_future_incident: bool
    ) -> None: ...

    def on_status(self, status: str) -> None: ...

    def finish_enrollment(self, form_id: str) -> None: ...


class FormLoaders:
    """Load-once-and-render and write-through wrappers for a single form."""

    def __init__(
        self,
        form_id: str,
        repository: FormRepository,
        view: FormView | Any,
        *,
        kind: FormKind = FormKind.EVENT,
        schedulers: SchedulerProvider | None = None,
        reporter: ErrorReporter | None = None,
        database_format: str = DATABASE_DATE_FORMAT,
        ui_format: str = UI_DATE_FORMAT,
    ) -> None:
        self.form_id = form_id
        self.kind = kind
        self._repo = repository
        self._view = view
        self._schedulers = schedulers or SchedulerProvider.trampoline()
        self._reporter: ErrorReporter = reporter or LoggingErrorReporter(form_id)
        self._database_format = database_format
        self._ui_format = ui_format
        self._scope: SubscriptionScope | None = None

    def start(self, scope: SubscriptionScope) -> None:
        """Subscribe the load-once streams inside *scope*."""
        self._scope = scope
        scope.spawn(self._load("title", self._fetch_title, "render_title"), name="load:title")
        scope.spawn(
            self._load("report_date", self._fetch_report_date, "render_report_date"),
            name="load:report_date",
        )
        scope.spawn(
            self._load("incident_date", self._fetch_incident_date, "render_incident_date"),
            name="load:incident_date",
        )
        scope.spawn(
            self._load("date_rules", self._fetch_picker_flags, "init_report_date_picker"),
            name="load:date_rules",
        )

    # ------------------------------------------------------------------
    # Write-through (called from the view)
    # ------------------------------------------------------------------

    def report_date_changed(self, value: str) -> asyncio.Task[Any] | None:
        return self._write("report_date", self._store_report_date, value)

    def incident_date_changed(self, value: str | None) -> asyncio.Task[Any] | None:
        if value is None:
            return None
        return self._write("incident_date", self._store_incident_date, value)

    def coordinates_changed(
        self, latitude: float | None, longitude: float | None
    ) -> asyncio.Task[Any] | None:
        if latitude is None or longitude is None:
            return None
        return self._write(
            "coordinates", self._repo.store_coordinates, self.form_id, latitude, longitude
        )

    def status_changed(self, status: ReportStatus | str) -> asyncio.Task[Any] | None:
        """Event forms echo the status to the view; enrollments complete.

        A value outside :class:`ReportStatus` is reported and dropped.
        """
        if self._scope is None:
            return None
        try:
            status = ReportStatus(status)
        except ValueError as exc:
            safe_report(self._reporter, LoaderError("status", exc))
            return None
        return self._scope.spawn(self._status(status), name=f"status:{status}")

    # ------------------------------------------------------------------
    # Fetchers (run on io)
    # ------------------------------------------------------------------

    def _fetch_title(self) -> tuple[Any, ...] | None:
        return (self._repo.title(self.form_id),)

    def _fetch_report_date(self) -> tuple[Any, ...] | None:
        value = self._repo.report_date(self.form_id)
        if value is None:
            return None
        return (self._to_ui(value),)

    def _fetch_incident_date(self) -> tuple[Any, ...] | None:
        rules = self._repo.date_rules(self.form_id)
        if not rules.display_incident_date:
            return None
        value = self._repo.incident_date(self.form_id)
        if value is None:
            return None
        return (self._to_ui(value),)

    def _fetch_picker_flags(self) -> tuple[Any, ...] | None:
        rules = self._repo.date_rules(self.form_id)
        return (rules.allow_future_report_dates, rules.allow_future_incident_dates)

    def _store_report_date(self, value: str) -> None:
        self._repo.store_report_date(self.form_id, self._normalize(value))

    def _store_incident_date(self, value: str) -> None:
        self._repo.store_incident_date(self.form_id, self._normalize(value))

    def _to_ui(self, value: str) -> str:
        return to_ui_date(value, database_format=self._database_format, ui_format=self._ui_format)

    def _normalize(self, value: str) -> str:
        return to_database_date(
            value, database_format=self._database_format, ui_format=self._ui_format
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _load(
        self, stream: str, fetch: Callable[[], tuple[Any, ...] | None], callback: str
    ) -> None:
        scope = self._scope
        assert scope is not None
        try:
            args = await self._schedulers.io.run(fetch)
            if args is None:
                return
            await self._schedulers.ui.run(self._call_view, scope, callback, args)
        except Exception as exc:
            if not scope.disposed:
                safe_report(self._reporter, LoaderError(stream, exc))

    def _write(
        self, stream: str, store: Callable[..., None], *args: Any
    ) -> asyncio.Task[Any] | None:
        if self._scope is None or self._scope.disposed:
            logger.debug("Write to %s dropped: loaders not started", stream)
            return None
        return self._scope.spawn(self._run_write(stream, store, *args), name=f"store:{stream}")

    async def _run_write(self, stream: str, store: Callable[..., None], *args: Any) -> None:
        try:
            await self._schedulers.io.run(store, *args)
        except Exception as exc:
            safe_report(self._reporter, LoaderError(stream, exc))

    async def _status(self, status: ReportStatus) -> None:
        scope = self._scope
        assert scope is not None
        try:
            if self.kind == FormKind.ENROLLMENT:
                await self._schedulers.io.run(self._repo.store_status, self.form_id, status)
                await self._schedulers.ui.run(
                    self._call_view, scope, "finish_enrollment", (self.form_id,)
                )
            else:
                await self._schedulers.ui.run(self._call_view, scope, "on_status", (status,))
        except Exception as exc:
            if not scope.disposed:
                safe_report(self._reporter, LoaderError("status", exc))

    def _call_view(self, scope: SubscriptionScope, callback: str, args: tuple[Any, ...]) -> None:
        if scope.disposed:
            return
        method = getattr(self._view, callback, None)
        if method is None:
            logger.debug("View has no %s callback", callback)
            return
        method(*args)
