"""Command: render a form through the pipeline."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from formpipe.commands._base import FormCommand

if TYPE_CHECKING:
    from formpipe.commands._context import AppContext


def _load_effects(path: Path) -> list[dict[str, Any]]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in {path}: {exc}"
        raise click.BadParameter(msg, param_hint="--effects") from exc
    if isinstance(raw, dict):
        raw = raw.get("effects", [])
    if not isinstance(raw, list):
        msg = f"{path} must hold a list of effects"
        raise click.BadParameter(msg, param_hint="--effects")
    return raw


@click.command(
    cls=FormCommand,
    examples="""\
  formpipe render visit-42
  formpipe render visit-42 --effects rules.json
  formpipe -v render visit-42 --effects rules.json --timeout 5

  rules.json:
    [{"kind": "hide-section", "section_uid": "s2"},
     {"kind": "assign-value", "field_uid": "f1", "value": "auto"}]""",
)
@click.argument("form_id")
@click.option(
    "--effects",
    "effects_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with the rule effects to apply.",
)
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the first render.")
@click.pass_obj
def render(
    app: AppContext, form_id: str, effects_path: Path | None, timeout: float | None
) -> None:
    """Render a form with rule effects applied."""
    effects = _load_effects(effects_path) if effects_path is not None else []
    app.emit(app.form_service().render(form_id, effects=effects, timeout=timeout))
