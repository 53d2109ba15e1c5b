"""Pipeline lifecycle events handed to plugins.

Each event names the hook it is delivered to and carries the recheck signal
``seq`` it belongs to, so the event log can be read back per form in signal
order.
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel


class PipelineEvent(BaseModel):
    """Base for everything the pipeline publishes to the plugin bus."""

    model_config = {"frozen": True}

    hook_name: ClassVar[str] = ""

    form_id: str | None
    seq: int | None = None

    def hook_kwargs(self) -> dict[str, object]:
        """Keyword arguments for the hook call (the event's fields)."""
        return self.model_dump(mode="json")


class RecheckEvent(PipelineEvent):
    """A recheck signal restarted the merge."""

    hook_name: ClassVar[str] = "post_recheck"

    form_id: str
    seq: int
    reason: str


class RenderEvent(PipelineEvent):
    """A merged section list reached the sink."""

    hook_name: ClassVar[str] = "post_render"

    form_id: str
    seq: int
    section_uids: tuple[str, ...]


class ErrorEvent(PipelineEvent):
    """An error went through the side error channel."""

    hook_name: ClassVar[str] = "report_error"

    error_type: str
    message: str


EVENT_TYPES: dict[str, type[PipelineEvent]] = {
    cls.hook_name: cls for cls in (RecheckEvent, RenderEvent, ErrorEvent)
}


def event_from_json(hook_name: str, payload: str) -> PipelineEvent:
    """Rebuild an event from its logged JSON payload.

    Raises:
        KeyError: if *hook_name* is not a known event hook.
    """
    return EVENT_TYPES[hook_name].model_validate_json(payload)
