"""Command group: section management."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from formpipe.commands._base import FormGroup

if TYPE_CHECKING:
    from formpipe.commands._context import AppContext


@click.group(cls=FormGroup, examples="  formpipe section add visit-42 s1 --label Household")
def section() -> None:
    """Manage form sections."""


@section.command(
    examples="""\
  formpipe section add visit-42 s1
  formpipe section add visit-42 s2 --label "Members" --position 1""",
)
@click.argument("form_id")
@click.argument("section_uid")
@click.option("--label", default="", help="Display label.")
@click.option("--position", type=int, default=None, help="Ordering position (default: last).")
@click.pass_obj
def add(
    app: AppContext, form_id: str, section_uid: str, label: str, position: int | None
) -> None:
    """Add a section to a form."""
    app.emit(app.form_service().add_section(form_id, section_uid, label=label, position=position))
