"""Tests for rule effect parsing and EvaluationResult."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from formpipe.domain.effects import (
    AssignValue,
    EffectKind,
    EvaluationResult,
    HideField,
    HideSection,
    ShowError,
    ShowWarning,
    UnknownEffect,
    parse_effect,
    parse_effects,
)


class TestParseEffect:
    @pytest.mark.parametrize(
        ("data", "expected_type"),
        [
            ({"kind": "hide-section", "section_uid": "s1"}, HideSection),
            ({"kind": "hide-field", "field_uid": "f1"}, HideField),
            ({"kind": "assign-value", "field_uid": "f1", "value": "x"}, AssignValue),
            ({"kind": "show-warning", "field_uid": "f1", "message": "w"}, ShowWarning),
            ({"kind": "show-error", "field_uid": "f1", "message": "e"}, ShowError),
        ],
    )
    def test_known_kinds(self, data: dict[str, str], expected_type: type) -> None:
        effect = parse_effect(data)
        assert isinstance(effect, expected_type)
        assert effect.kind == data["kind"]

    def test_unknown_kind_keeps_payload(self) -> None:
        effect = parse_effect({"kind": "display-text", "field_uid": "f1", "text": "hi"})
        assert isinstance(effect, UnknownEffect)
        assert effect.kind == "display-text"
        assert effect.payload == {"field_uid": "f1", "text": "hi"}

    def test_missing_kind_rejected(self) -> None:
        with pytest.raises(ValueError, match="no kind"):
            parse_effect({"section_uid": "s1"})

    @pytest.mark.parametrize("item", ["hide-section", 3, ["kind", "hide-section"], None])
    def test_non_mapping_rejected(self, item: object) -> None:
        with pytest.raises(ValueError, match="must be a mapping"):
            parse_effect(item)  # type: ignore[arg-type]

    def test_malformed_known_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_effect({"kind": "hide-section"})

    def test_parse_effects_preserves_order(self) -> None:
        effects = parse_effects(
            [
                {"kind": "hide-field", "field_uid": "f2"},
                {"kind": "hide-section", "section_uid": "s1"},
            ]
        )
        assert [e.kind for e in effects] == [EffectKind.HIDE_FIELD, EffectKind.HIDE_SECTION]

    def test_effects_are_frozen(self) -> None:
        effect = HideSection(section_uid="s1")
        with pytest.raises(ValidationError):
            effect.section_uid = "s2"  # type: ignore[misc]


class TestEvaluationResult:
    def test_success(self) -> None:
        result = EvaluationResult.success([HideSection(section_uid="s1")])
        assert result.ok
        assert result.failure is None
        assert len(result.effects) == 1

    def test_failed_keeps_cause(self) -> None:
        cause = SyntaxError("bad expr")
        result = EvaluationResult.failed("bad expr", cause)
        assert not result.ok
        assert result.effects == ()
        assert result.failure is not None
        assert result.failure.message == "bad expr"
        assert result.failure.cause is cause

    def test_effects_and_failure_are_exclusive(self) -> None:
        with pytest.raises(ValidationError):
            EvaluationResult(
                effects=(HideSection(section_uid="s1"),),
                failure=EvaluationResult.failed("x").failure,
            )
