"""FormService: form metadata, values, and one-shot pipeline renders.

Every method returns a :class:`ServiceResult`. Store rejections become
structured errors; pipeline side errors become warnings.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from formpipe.domain.dates import DateRules, to_database_date
from formpipe.domain.effects import parse_effects
from formpipe.domain.lifecycle import FormKind
from formpipe.domain.sections import SectionViewModel, section_uids
from formpipe.infrastructure.sources import StaticRuleEvaluator, StoreSectionSource
from formpipe.infrastructure.store import StoreError
from formpipe.pipeline.form import FormPipeline
from formpipe.pipeline.reporting import (
    CollectingErrorReporter,
    FanOutErrorReporter,
    LoggingErrorReporter,
)
from formpipe.pipeline.schedulers import SchedulerProvider
from formpipe.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from formpipe.config.settings import FormpipeSettings
    from formpipe.domain.effects import RuleEffect
    from formpipe.infrastructure.store import FormStore
    from formpipe.pipeline.protocols import ErrorReporter
    from formpipe.plugins.event_bus import EventBus

logger = logging.getLogger(__name__)

DEFAULT_RENDER_TIMEOUT = 10.0


def _store_error(op: str, exc: StoreError) -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=exc.code, message=exc.message, detail=exc.detail),
    )


class FormService:
    """Form operations over a :class:`FormStore`.

    Parameters:
        store: The form store.
        settings: Optional settings (date formats, schedulers, timeouts).
        event_bus: Optional plugin bus for render hooks and error reports.
        reporter: Optional extra error reporter for renders.
    """

    def __init__(
        self,
        store: FormStore,
        *,
        settings: FormpipeSettings | None = None,
        event_bus: EventBus | None = None,
        reporter: ErrorReporter | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._event_bus = event_bus
        self._reporter = reporter

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def create_form(
        self,
        form_id: str,
        title: str,
        *,
        kind: str = FormKind.EVENT,
        report_date: str | None = None,
        incident_date: str | None = None,
        date_rules: DateRules | None = None,
    ) -> ServiceResult:
        op = "create_form"
        try:
            self._store.create_form(
                form_id,
                title,
                kind=FormKind(kind),
                report_date=self._normalize_date(report_date),
                incident_date=self._normalize_date(incident_date),
                date_rules=date_rules,
            )
        except StoreError as exc:
            return _store_error(op, exc)
        except ValueError as exc:
            return ServiceResult(
                ok=False, op=op, error=ServiceError(code="INVALID_INPUT", message=str(exc))
            )
        return ServiceResult(
            ok=True, op=op, data={"id": form_id, "title": title, "kind": str(FormKind(kind))}
        )

    def add_section(
        self, form_id: str, section_uid: str, *, label: str = "", position: int | None = None
    ) -> ServiceResult:
        op = "add_section"
        try:
            self._store.add_section(form_id, section_uid, label=label, position=position)
        except StoreError as exc:
            return _store_error(op, exc)
        return ServiceResult(ok=True, op=op, data={"form_id": form_id, "section_uid": section_uid})

    def add_field(
        self,
        form_id: str,
        field_uid: str,
        section_uid: str,
        *,
        label: str = "",
        mandatory: bool = False,
        position: int | None = None,
    ) -> ServiceResult:
        op = "add_field"
        try:
            self._store.add_field(
                form_id,
                field_uid,
                section_uid,
                label=label,
                mandatory=mandatory,
                position=position,
            )
        except StoreError as exc:
            return _store_error(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={"form_id": form_id, "field_uid": field_uid, "section_uid": section_uid},
        )

    def set_value(self, form_id: str, field_uid: str, value: str | None) -> ServiceResult:
        op = "set_value"
        try:
            self._store.set_value(form_id, field_uid, value)
        except StoreError as exc:
            return _store_error(op, exc)
        return ServiceResult(
            ok=True, op=op, data={"form_id": form_id, "field_uid": field_uid, "value": value}
        )

    def show_form(self, form_id: str) -> ServiceResult:
        op = "show_form"
        try:
            form = self._store.get_form(form_id)
            _revision, sections = self._store.load_sections(form_id)
        except StoreError as exc:
            return _store_error(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={**form, "sections": [s.model_dump(mode="json") for s in sections]},
        )

    def list_forms(self) -> ServiceResult:
        forms = self._store.list_forms()
        return ServiceResult(ok=True, op="list_forms", data={"items": forms, "count": len(forms)})

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(
        self,
        form_id: str,
        *,
        effects: Sequence[Mapping[str, Any]] | None = None,
        timeout: float | None = None,
    ) -> ServiceResult:
        """Run the pipeline once against a fixed effect list.

        Attaches a pipeline, waits for the first merged delivery, detaches.
        """
        op = "render"
        try:
            parsed = parse_effects(effects or [])
        except ValueError as exc:
            return ServiceResult(
                ok=False, op=op, error=ServiceError(code="INVALID_EFFECTS", message=str(exc))
            )
        try:
            _revision, source = self._store.load_sections(form_id)
        except StoreError as exc:
            return _store_error(op, exc)

        collected = CollectingErrorReporter()
        limit = timeout or self._render_timeout()
        try:
            rendered = asyncio.run(self._render_once(form_id, parsed, collected, limit))
        except TimeoutError:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="RENDER_TIMEOUT",
                    message=f"No render for form {form_id!r} within {limit}s",
                    detail={"form_id": form_id},
                ),
                warnings=[f"{type(e).__name__}: {e}" for e in collected.errors],
            )

        visible = section_uids(rendered)
        hidden = [uid for uid in section_uids(source) if uid not in visible]
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "form_id": form_id,
                "sections": [s.model_dump(mode="json") for s in rendered],
                "count": len(rendered),
                "hidden_sections": hidden,
            },
            warnings=[f"{type(e).__name__}: {e}" for e in collected.errors],
        )

    async def _render_once(
        self,
        form_id: str,
        effects: list[RuleEffect],
        collected: CollectingErrorReporter,
        timeout: float,
    ) -> list[SectionViewModel]:
        schedulers = self._schedulers()
        reporters: list[ErrorReporter] = [collected]
        if self._reporter is not None:
            reporters.append(self._reporter)
        if self._settings is not None and self._settings.pipeline.report_errors:
            reporters.append(LoggingErrorReporter(form_id))
        if self._event_bus is not None:
            from formpipe.plugins.reporter import PluginErrorReporter

            reporters.append(
                PluginErrorReporter(self._event_bus, form_id, seq=lambda: pipeline.current_seq)
            )

        poll = self._settings.store.poll_interval if self._settings else None
        pipeline = FormPipeline(
            form_id,
            sections=StoreSectionSource(self._store, schedulers=schedulers, poll_interval=poll),
            evaluator=StaticRuleEvaluator(
                self._store, effects, schedulers=schedulers, poll_interval=poll
            ),
            schedulers=schedulers,
            reporter=FanOutErrorReporter(*reporters),
            event_bus=self._event_bus,
        )

        delivered: asyncio.Future[list[SectionViewModel]] = (
            asyncio.get_running_loop().create_future()
        )

        def _sink(sections: Sequence[SectionViewModel]) -> None:
            if not delivered.done():
                delivered.set_result(list(sections))

        pipeline.attach(_sink)
        try:
            return await asyncio.wait_for(delivered, timeout)
        finally:
            await pipeline.aclose()
            schedulers.shutdown()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _schedulers(self) -> SchedulerProvider:
        if self._settings is None or self._settings.schedulers.trampoline:
            return SchedulerProvider.trampoline()
        return SchedulerProvider.default(max_workers=self._settings.schedulers.max_workers)

    def _render_timeout(self) -> float:
        if self._settings is None:
            return DEFAULT_RENDER_TIMEOUT
        return self._settings.pipeline.render_timeout

    def _normalize_date(self, value: str | None) -> str | None:
        if value is None:
            return None
        if self._settings is None:
            return to_database_date(value)
        return to_database_date(
            value,
            database_format=self._settings.dates.database_format,
            ui_format=self._settings.dates.ui_format,
        )
