"""Rule effect taxonomy and evaluation results.

Effects form a closed set of tagged variants keyed by ``kind``. Parsing an
effect whose kind is not registered yields :class:`UnknownEffect` instead of
failing, so newer rule engines never break older forms.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, Field, model_validator


class EffectKind(StrEnum):
    """Effect kinds understood by the effect applier."""

    HIDE_SECTION = "hide-section"
    HIDE_FIELD = "hide-field"
    ASSIGN_VALUE = "assign-value"
    SHOW_WARNING = "show-warning"
    SHOW_ERROR = "show-error"


class BaseEffect(BaseModel):
    """Common base for all rule effects."""

    model_config = {"frozen": True}

    kind: str

    _kind: ClassVar[str] = ""


class HideSection(BaseEffect):
    kind: Literal["hide-section"] = "hide-section"
    section_uid: str

    _kind: ClassVar[str] = EffectKind.HIDE_SECTION


class HideField(BaseEffect):
    kind: Literal["hide-field"] = "hide-field"
    field_uid: str

    _kind: ClassVar[str] = EffectKind.HIDE_FIELD


class AssignValue(BaseEffect):
    kind: Literal["assign-value"] = "assign-value"
    field_uid: str
    value: str | None = None

    _kind: ClassVar[str] = EffectKind.ASSIGN_VALUE


class ShowWarning(BaseEffect):
    kind: Literal["show-warning"] = "show-warning"
    field_uid: str
    message: str

    _kind: ClassVar[str] = EffectKind.SHOW_WARNING


class ShowError(BaseEffect):
    kind: Literal["show-error"] = "show-error"
    field_uid: str
    message: str

    _kind: ClassVar[str] = EffectKind.SHOW_ERROR


class UnknownEffect(BaseEffect):
    """Effect whose kind this version does not understand. Always ignored."""

    payload: dict[str, Any] = Field(default_factory=dict)


RuleEffect = HideSection | HideField | AssignValue | ShowWarning | ShowError | UnknownEffect

EFFECT_REGISTRY: dict[str, type[BaseEffect]] = {
    cls._kind: cls for cls in (HideSection, HideField, AssignValue, ShowWarning, ShowError)
}


def parse_effect(data: Mapping[str, Any]) -> RuleEffect:
    """Build a typed effect from a raw mapping.

    Raises:
        ValueError: If *data* is not a mapping, has no ``kind``, or a
            known kind is malformed.
    """
    if not isinstance(data, Mapping):
        msg = f"Rule effect must be a mapping, got {type(data).__name__}: {data!r}"
        raise ValueError(msg)
    kind = data.get("kind")
    if not kind:
        msg = f"Rule effect has no kind: {dict(data)!r}"
        raise ValueError(msg)
    model_cls = EFFECT_REGISTRY.get(str(kind))
    if model_cls is None:
        payload = {k: v for k, v in data.items() if k != "kind"}
        return UnknownEffect(kind=str(kind), payload=payload)
    return model_cls.model_validate(dict(data))  # type: ignore[return-value]


def parse_effects(items: Iterable[Mapping[str, Any]]) -> list[RuleEffect]:
    """Parse a sequence of raw effect mappings, preserving order."""
    return [parse_effect(item) for item in items]


class EvaluationFailure(BaseModel):
    """Rule engine could not produce effects for the current context."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    message: str
    cause: BaseException | None = None


class EvaluationResult(BaseModel):
    """Either an ordered list of effects or a failure, never both."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    effects: tuple[RuleEffect, ...] = ()
    failure: EvaluationFailure | None = None

    @model_validator(mode="after")
    def _effects_or_failure(self) -> EvaluationResult:
        if self.failure is not None and self.effects:
            msg = "EvaluationResult cannot carry both effects and a failure"
            raise ValueError(msg)
        return self

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, effects: Iterable[RuleEffect] = ()) -> EvaluationResult:
        return cls(effects=tuple(effects))

    @classmethod
    def failed(cls, message: str, cause: BaseException | None = None) -> EvaluationResult:
        return cls(failure=EvaluationFailure(message=message, cause=cause))
