"""Pipeline lifecycle states and the transitions the pipeline enforces.

``detached → attached → (merging ⇄ idle) → detached``. Any attached state may
return to ``detached``; nothing else may leave ``detached`` except attach.
"""

from __future__ import annotations

from enum import StrEnum


class PipelineState(StrEnum):
    """Lifecycle state of a FormPipeline."""

    DETACHED = "detached"
    ATTACHED = "attached"
    MERGING = "merging"
    IDLE = "idle"


class FormKind(StrEnum):
    """What a form captures; decides how status changes are handled."""

    EVENT = "event"
    ENROLLMENT = "enrollment"


class ReportStatus(StrEnum):
    """Status values a form view may push back through the status stream."""

    ACTIVE = "active"
    COMPLETED = "completed"
    SKIPPED = "skipped"


PIPELINE_TRANSITIONS: dict[str, list[str]] = {
    "detached": ["attached"],
    "attached": ["merging", "detached"],
    "merging": ["idle", "merging", "detached"],
    "idle": ["merging", "detached"],
}


def is_valid_transition(current: str, target: str) -> bool:
    """Whether the pipeline may move from *current* to *target*."""
    return target in PIPELINE_TRANSITIONS.get(current, [])
