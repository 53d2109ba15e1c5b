"""EffectApplier: merge one section snapshot with one evaluation result.

Pure apart from reporting an evaluation failure. A failing result never
blanks the form: the input sections come back untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from formpipe.domain.effects import (
    AssignValue,
    EvaluationResult,
    HideField,
    HideSection,
    ShowError,
    ShowWarning,
)
from formpipe.pipeline.errors import EvaluationError
from formpipe.pipeline.reporting import safe_report

if TYPE_CHECKING:
    from formpipe.domain.sections import FieldViewModel, SectionViewModel
    from formpipe.pipeline.protocols import ErrorReporter

logger = logging.getLogger(__name__)

MergedSectionList = dict[str, "SectionViewModel"]


def to_merged(sections: Sequence[SectionViewModel]) -> MergedSectionList:
    """Index sections by uid in source order. First occurrence wins."""
    merged: MergedSectionList = {}
    for section in sections:
        if section.section_uid in merged:
            logger.debug("Duplicate section %s ignored", section.section_uid)
            continue
        merged[section.section_uid] = section
    return merged


def _update_field(
    merged: MergedSectionList,
    field_uid: str,
    update: Callable[[FieldViewModel], FieldViewModel],
) -> None:
    for uid, section in merged.items():
        current = section.field(field_uid)
        if current is not None:
            merged[uid] = section.replace_field(update(current))
            return


def _hide_section(merged: MergedSectionList, effect: HideSection) -> None:
    merged.pop(effect.section_uid, None)


def _hide_field(merged: MergedSectionList, effect: HideField) -> None:
    _update_field(merged, effect.field_uid, lambda f: f.model_copy(update={"visible": False}))


def _assign_value(merged: MergedSectionList, effect: AssignValue) -> None:
    _update_field(
        merged,
        effect.field_uid,
        lambda f: f.model_copy(update={"value": effect.value, "editable": False}),
    )


def _show_warning(merged: MergedSectionList, effect: ShowWarning) -> None:
    _update_field(
        merged, effect.field_uid, lambda f: f.model_copy(update={"warning": effect.message})
    )


def _show_error(merged: MergedSectionList, effect: ShowError) -> None:
    _update_field(
        merged, effect.field_uid, lambda f: f.model_copy(update={"error": effect.message})
    )


_HANDLERS: dict[type, Callable[[MergedSectionList, Any], None]] = {
    HideSection: _hide_section,
    HideField: _hide_field,
    AssignValue: _assign_value,
    ShowWarning: _show_warning,
    ShowError: _show_error,
}


def apply_effects(
    sections: Sequence[SectionViewModel],
    result: EvaluationResult,
    *,
    reporter: ErrorReporter | None = None,
) -> list[SectionViewModel]:
    """Return *sections* filtered and annotated by *result*'s effects.

    Effects apply in evaluator order. Targets that are absent are no-ops and
    unknown effect kinds are skipped.
    """
    if result.failure is not None:
        logger.warning("Rule evaluation failed: %s", result.failure.message)
        safe_report(reporter, EvaluationError(result.failure))
        return list(sections)

    merged = to_merged(sections)
    for effect in result.effects:
        handler = _HANDLERS.get(type(effect))
        if handler is None:
            logger.debug("Ignoring rule effect of kind %r", effect.kind)
            continue
        handler(merged, effect)
    return list(merged.values())
