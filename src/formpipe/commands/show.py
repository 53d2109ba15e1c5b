"""Command: show a form's metadata and stored sections."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from formpipe.commands._base import FormCommand

if TYPE_CHECKING:
    from formpipe.commands._context import AppContext


@click.command(
    cls=FormCommand,
    examples="""\
  formpipe show visit-42
  formpipe --json show visit-42""",
)
@click.argument("form_id")
@click.pass_obj
def show(app: AppContext, form_id: str) -> None:
    """Show a form as stored, before any rule effects."""
    app.emit(app.form_service().show_form(form_id))
