"""Command group: field values."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from formpipe.commands._base import FormGroup

if TYPE_CHECKING:
    from formpipe.commands._context import AppContext


@click.group(cls=FormGroup, examples="  formpipe value set visit-42 f1 Alice")
def value() -> None:
    """Read and write field values."""


@value.command(
    "set",
    examples="""\
  formpipe value set visit-42 f1 Alice
  formpipe value set visit-42 f1 --clear""",
)
@click.argument("form_id")
@click.argument("field_uid")
@click.argument("new_value", required=False, default=None)
@click.option("--clear", is_flag=True, help="Clear the stored value.")
@click.pass_obj
def set_cmd(
    app: AppContext, form_id: str, field_uid: str, new_value: str | None, clear: bool
) -> None:
    """Set (or clear) the value of a field."""
    if new_value is None and not clear:
        click.echo("No value given. Pass a value or --clear.", err=True)
        raise SystemExit(1)
    app.emit(app.form_service().set_value(form_id, field_uid, None if clear else new_value))
