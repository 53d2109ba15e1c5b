"""Command: store initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from formpipe.commands._base import FormCommand

if TYPE_CHECKING:
    from formpipe.commands._context import AppContext

_INIT_EXAMPLES = """\
  formpipe init
  formpipe init /path/to/forms
  formpipe init . --no-config"""


@click.command("init", cls=FormCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--no-config", is_flag=True, help="Do not write a starter formpipe.toml.")
@click.pass_obj
def init_cmd(app: AppContext, path: str, no_config: bool) -> None:
    """Initialize a form store in PATH (default: current directory)."""
    from formpipe.services.init import InitService

    app.emit(InitService.init_store(Path(path).resolve(), write_config=not no_config))
