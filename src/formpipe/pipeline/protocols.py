"""Collaborator interfaces consumed by the form pipeline."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from formpipe.domain.dates import DateRules
    from formpipe.domain.effects import EvaluationResult
    from formpipe.domain.sections import SectionViewModel


class SectionSource(Protocol):
    """Produces section-list snapshots for a form."""

    def snapshots(self, form_id: str) -> AsyncIterator[Sequence[SectionViewModel]]:
        """Return a fresh, restartable stream of section snapshots.

        Each call starts a new subscription. The stream emits whenever the
        underlying metadata or values change and normally never ends.
        """
        ...


class RuleEvaluator(Protocol):
    """Produces rule-evaluation results for a form."""

    def evaluate(self, form_id: str) -> AsyncIterator[EvaluationResult]:
        """Return a fresh, restartable stream of evaluation results."""
        ...


@runtime_checkable
class Sink(Protocol):
    """Presentation-side receiver of merged section lists."""

    def render(self, sections: Sequence[SectionViewModel]) -> None: ...


class ErrorReporter(Protocol):
    """Fire-and-forget error channel. Must never raise."""

    def report(self, error: BaseException) -> None: ...


class FormRepository(Protocol):
    """Storage collaborator behind the one-shot form streams."""

    def title(self, form_id: str) -> str: ...

    def report_date(self, form_id: str) -> str | None: ...

    def incident_date(self, form_id: str) -> str | None: ...

    def date_rules(self, form_id: str) -> DateRules: ...

    def store_report_date(self, form_id: str, value: str) -> None: ...

    def store_incident_date(self, form_id: str, value: str) -> None: ...

    def store_coordinates(self, form_id: str, latitude: float, longitude: float) -> None: ...

    def store_status(self, form_id: str, status: str) -> None: ...
