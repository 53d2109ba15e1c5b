"""FormPipeline: merge section snapshots with rule results for one form.

Every recheck signal (including the implicit ``init`` signal on attach)
disposes the running pair subscription, waits for it to finish, and only
then subscribes a fresh positional zip of the section source and the rule
evaluator. The next signal is read only once that subscription is live, so
every signal gets its own subscription. Each pair goes through the effect
applier on the computation scheduler and is delivered to the sink on the ui scheduler.

INVARIANT: at most one merge is live per attach. A delivery runs only if
its merge's token is still alive at the moment the ui context executes it,
so nothing reaches the sink after ``detach()`` or after a newer signal.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from formpipe.config.logging import pipeline_logger
from formpipe.domain.events import PipelineEvent, RecheckEvent, RenderEvent
from formpipe.domain.lifecycle import PipelineState, is_valid_transition
from formpipe.domain.sections import section_uids
from formpipe.pipeline.effects import apply_effects
from formpipe.pipeline.errors import AlreadyAttachedError, ProducerFailure
from formpipe.pipeline.pairing import zip_streams
from formpipe.pipeline.reporting import LoggingErrorReporter, safe_report
from formpipe.pipeline.schedulers import SchedulerProvider
from formpipe.pipeline.scope import CancelToken, SubscriptionScope
from formpipe.pipeline.trigger import CHECK_REASON, RecheckSignal, RecheckTrigger

if TYPE_CHECKING:
    from formpipe.domain.effects import EvaluationResult
    from formpipe.domain.sections import SectionViewModel
    from formpipe.pipeline.loaders import FormLoaders
    from formpipe.pipeline.protocols import ErrorReporter, RuleEvaluator, SectionSource, Sink
    from formpipe.plugins.event_bus import EventBus

RenderCallback = Callable[[Sequence["SectionViewModel"]], Any]


class FormPipeline:
    """Owns the merge subscription for one form.

    Parameters:
        form_id: Identifier handed to both producers.
        sections: Source of section-list snapshots.
        evaluator: Source of rule evaluation results.
        schedulers: io / computation / ui contexts (trampoline if omitted).
        reporter: Side error channel (structured logging if omitted).
        loaders: Optional one-shot streams started and stopped with the pipeline.
        event_bus: Optional plugin event bus for ``post_render`` / ``post_recheck``.
    """

    def __init__(
        self,
        form_id: str,
        *,
        sections: SectionSource,
        evaluator: RuleEvaluator,
        schedulers: SchedulerProvider | None = None,
        reporter: ErrorReporter | None = None,
        loaders: FormLoaders | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.form_id = form_id
        self._sections = sections
        self._evaluator = evaluator
        self._schedulers = schedulers or SchedulerProvider.trampoline()
        self._reporter: ErrorReporter = reporter or LoggingErrorReporter(form_id)
        self._loaders = loaders
        self._event_bus = event_bus
        self._trigger = RecheckTrigger()
        self._log = pipeline_logger(__name__, form_id)

        self._state = PipelineState.DETACHED
        self._render: RenderCallback | None = None
        self._scope: SubscriptionScope | None = None
        self._merge_scope: SubscriptionScope | None = None
        self._merge_task: asyncio.Task[None] | None = None
        self._closing: set[asyncio.Task[Any]] = set()
        self._seq: int | None = None
        self.deliveries = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_attached(self) -> bool:
        return self._state != PipelineState.DETACHED

    @property
    def trigger(self) -> RecheckTrigger:
        return self._trigger

    @property
    def current_seq(self) -> int | None:
        """``seq`` of the recheck signal that started the live merge."""
        return self._seq

    def attach(self, sink: Sink | RenderCallback) -> None:
        """Start merging and delivering to *sink*. Needs a running event loop.

        Raises:
            AlreadyAttachedError: If the pipeline is already attached.
        """
        if self.is_attached:
            msg = f"Pipeline for form {self.form_id!r} is already attached"
            raise AlreadyAttachedError(msg)

        self._render = sink.render if hasattr(sink, "render") else sink  # type: ignore[union-attr]
        self._scope = SubscriptionScope(f"form:{self.form_id}")
        self.deliveries = 0
        self._set_state(PipelineState.ATTACHED)

        self._trigger.open()
        self._scope.spawn(self._restart_loop(self._scope), name=f"recheck:{self.form_id}")
        if self._loaders is not None:
            self._loaders.start(self._scope.child("loaders"))
        self._log.debug("pipeline.attached")

    def detach(self) -> None:
        """Dispose every live subscription. Idempotent; no delivery follows it."""
        if not self.is_attached:
            return
        self._render = None
        self._trigger.close()
        if self._scope is not None:
            for task in self._scope.dispose():
                self._closing.add(task)
                task.add_done_callback(self._closing.discard)
        self._scope = None
        self._merge_scope = None
        self._merge_task = None
        self._set_state(PipelineState.DETACHED)
        self._log.debug("pipeline.detached")

    async def aclose(self) -> None:
        """Detach, then wait until every cancelled task has unwound."""
        self.detach()
        current = asyncio.current_task()
        pending = [t for t in self._closing if t is not current]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def check_sections(self, reason: str = CHECK_REASON) -> bool:
        """Request a fresh merge. Returns False when detached."""
        return self._trigger.request_recheck(reason)

    async def wait_idle(self) -> None:
        """Wait for the current merge to end (finite producers only)."""
        task = self._merge_task
        while task is not None and not task.done():
            await asyncio.wait({task})
            task = self._merge_task

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _set_state(self, target: PipelineState) -> None:
        if target == PipelineState.DETACHED or is_valid_transition(self._state, target):
            self._state = target
        else:
            self._log.debug("pipeline.transition_ignored", current=self._state, target=target)

    async def _restart_loop(self, scope: SubscriptionScope) -> None:
        async for signal in self._trigger.signals():
            if self._merge_scope is not None:
                await self._merge_scope.aclose()
            if scope.disposed:
                return

            merge_scope = scope.child(f"merge#{signal.seq}")
            self._merge_scope = merge_scope
            self._seq = signal.seq
            self._set_state(PipelineState.MERGING)
            self._log.debug("pipeline.recheck", seq=signal.seq, reason=signal.reason)
            subscribed = asyncio.Event()
            task = merge_scope.spawn(
                self._merge(signal, merge_scope.token, subscribed),
                name=f"merge:{self.form_id}#{signal.seq}",
            )
            self._merge_task = task
            self._dispatch(
                RecheckEvent(form_id=self.form_id, seq=signal.seq, reason=signal.reason)
            )
            if task is not None:
                await _until_subscribed(task, subscribed)

    async def _merge(
        self, signal: RecheckSignal, token: CancelToken, subscribed: asyncio.Event
    ) -> None:
        try:
            pairs = zip_streams(
                self._sections.snapshots(self.form_id),
                self._evaluator.evaluate(self.form_id),
                left_name="section source",
                right_name="rule evaluator",
                on_subscribed=subscribed.set,
            )
            async with aclosing(pairs) as stream:
                async for sections, result in stream:
                    merged = await self._schedulers.computation.run(self._apply, sections, result)
                    delivered = await self._schedulers.ui.run(self._deliver, merged, token)
                    if delivered:
                        self._dispatch(
                            RenderEvent(
                                form_id=self.form_id,
                                seq=signal.seq,
                                section_uids=section_uids(merged),
                            )
                        )
        except ProducerFailure as exc:
            if not token.cancelled:
                self._log.warning("pipeline.producer_failed", seq=signal.seq, source=exc.source)
                safe_report(self._reporter, exc)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not token.cancelled:
                self._log.warning("pipeline.merge_failed", seq=signal.seq, error=str(exc))
                safe_report(self._reporter, exc)
        finally:
            subscribed.set()
            if not token.cancelled and self._state == PipelineState.MERGING:
                self._set_state(PipelineState.IDLE)

    def _apply(
        self, sections: Sequence[SectionViewModel], result: EvaluationResult
    ) -> list[SectionViewModel]:
        return apply_effects(sections, result, reporter=self._reporter)

    def _deliver(self, merged: list[SectionViewModel], token: CancelToken) -> bool:
        render = self._render
        if token.cancelled or render is None:
            self._log.debug("pipeline.delivery_suppressed", sections=len(merged))
            return False
        render(merged)
        self.deliveries += 1
        return True

    def _dispatch(self, event: PipelineEvent) -> None:
        """Hand a lifecycle event to the plugin bus. Failures are warnings."""
        bus = self._event_bus
        if bus is None:
            return
        try:
            bus.publish(event)
        except Exception:
            self._log.warning("pipeline.dispatch_failed", hook=event.hook_name, exc_info=True)


async def _until_subscribed(task: asyncio.Task[Any], subscribed: asyncio.Event) -> None:
    """Wait until *task* has subscribed its producers (or has already ended)."""
    waiter = asyncio.ensure_future(subscribed.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
