"""Command group: field management."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from formpipe.commands._base import FormGroup

if TYPE_CHECKING:
    from formpipe.commands._context import AppContext


@click.group(cls=FormGroup, examples="  formpipe field add visit-42 f1 s1 --label Name")
def field() -> None:
    """Manage form fields."""


@field.command(
    examples="""\
  formpipe field add visit-42 f1 s1
  formpipe field add visit-42 f2 s1 --label "Age" --mandatory""",
)
@click.argument("form_id")
@click.argument("field_uid")
@click.argument("section_uid")
@click.option("--label", default="", help="Display label.")
@click.option("--mandatory", is_flag=True, help="Mark the field mandatory.")
@click.option("--position", type=int, default=None, help="Ordering position (default: last).")
@click.pass_obj
def add(
    app: AppContext,
    form_id: str,
    field_uid: str,
    section_uid: str,
    label: str,
    mandatory: bool,
    position: int | None,
) -> None:
    """Add a field to a section."""
    app.emit(
        app.form_service().add_field(
            form_id, field_uid, section_uid, label=label, mandatory=mandatory, position=position
        )
    )
