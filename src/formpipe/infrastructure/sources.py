"""Store-backed producers for the form pipeline.

Both producers follow the same shape: wait for a change of the form, read a
fresh snapshot on the io scheduler, emit it. A poll tick that finds the
revision unchanged emits nothing. Each call to ``snapshots``/``evaluate``
starts an independent subscription.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from formpipe.domain.effects import EvaluationResult, RuleEffect
from formpipe.pipeline.schedulers import SchedulerProvider

if TYPE_CHECKING:
    from formpipe.domain.sections import SectionViewModel
    from formpipe.infrastructure.store import FormStore

logger = logging.getLogger(__name__)

RuleFunction = Callable[
    [Mapping[str, str | None]],
    "Iterable[RuleEffect] | EvaluationResult | Awaitable[Iterable[RuleEffect] | EvaluationResult]",
]


async def _revisions(
    store: FormStore,
    form_id: str,
    schedulers: SchedulerProvider,
    poll_interval: float | None,
) -> AsyncIterator[int]:
    """Yield the form's revision each time it changes (first read included)."""
    last: int | None = None
    async with aclosing(store.feed.changes(form_id, poll_interval=poll_interval)) as changes:
        async for _ in changes:
            revision = await schedulers.io.run(store.revision, form_id)
            if revision == last:
                continue
            last = revision
            yield revision


class StoreSectionSource:
    """Section snapshots read from the form store."""

    def __init__(
        self,
        store: FormStore,
        *,
        schedulers: SchedulerProvider | None = None,
        poll_interval: float | None = None,
    ) -> None:
        self._store = store
        self._schedulers = schedulers or SchedulerProvider.trampoline()
        self._poll_interval = poll_interval

    async def snapshots(self, form_id: str) -> AsyncIterator[list[SectionViewModel]]:
        last: int | None = None
        changes = self._store.feed.changes(form_id, poll_interval=self._poll_interval)
        async with aclosing(changes) as stream:
            async for _ in stream:
                revision, snapshot = await self._schedulers.io.run(
                    self._store.load_sections, form_id
                )
                if revision == last:
                    continue
                last = revision
                logger.debug("Section snapshot r%d for %s", revision, form_id)
                yield snapshot


class CallableRuleEvaluator:
    """Evaluate a user-supplied rule function against the form's values.

    The function receives the current ``field id -> value`` mapping and
    returns effects (or a full :class:`EvaluationResult`); it may be async.
    Any exception it raises becomes a failed result, not a producer failure.
    """

    def __init__(
        self,
        store: FormStore,
        rules: RuleFunction,
        *,
        schedulers: SchedulerProvider | None = None,
        poll_interval: float | None = None,
    ) -> None:
        self._store = store
        self._rules = rules
        self._schedulers = schedulers or SchedulerProvider.trampoline()
        self._poll_interval = poll_interval

    async def evaluate(self, form_id: str) -> AsyncIterator[EvaluationResult]:
        revisions = _revisions(self._store, form_id, self._schedulers, self._poll_interval)
        async with aclosing(revisions) as stream:
            async for _ in stream:
                values = await self._schedulers.io.run(self._store.field_values, form_id)
                yield await self._run_rules(values)

    async def _run_rules(self, values: Mapping[str, str | None]) -> EvaluationResult:
        try:
            outcome: Any = await self._schedulers.computation.run(self._rules, values)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as exc:
            logger.debug("Rule function raised", exc_info=True)
            return EvaluationResult.failed(str(exc) or type(exc).__name__, exc)
        if isinstance(outcome, EvaluationResult):
            return outcome
        return EvaluationResult.success(outcome or ())


class StaticRuleEvaluator(CallableRuleEvaluator):
    """Emit the same result on every change of the form (fixtures, CLI)."""

    def __init__(
        self,
        store: FormStore,
        result: EvaluationResult | Iterable[RuleEffect],
        *,
        schedulers: SchedulerProvider | None = None,
        poll_interval: float | None = None,
    ) -> None:
        fixed = result if isinstance(result, EvaluationResult) else EvaluationResult.success(result)
        super().__init__(
            store,
            lambda _values: fixed,
            schedulers=schedulers,
            poll_interval=poll_interval,
        )
