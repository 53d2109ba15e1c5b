"""Subcommand modules for formpipe.

Provides register_commands(), which imports command modules lazily so
``formpipe --help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root group."""
    # --- Groups ---
    from formpipe.commands.field import field
    from formpipe.commands.form import form
    from formpipe.commands.section import section
    from formpipe.commands.value import value

    cli.add_command(form)
    cli.add_command(section)
    cli.add_command(field)
    cli.add_command(value)

    # --- Standalone commands ---
    from formpipe.commands.init_cmd import init_cmd
    from formpipe.commands.render import render
    from formpipe.commands.show import show

    cli.add_command(init_cmd)
    cli.add_command(show)
    cli.add_command(render)
