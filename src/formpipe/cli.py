"""Root CLI group for formpipe with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from formpipe import __version__
from formpipe.commands import register_commands
from formpipe.commands._context import AppContext
from formpipe.config.settings import FormpipeSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="formpipe")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option(
    "-s",
    "--store",
    "store_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Form store directory (default: discovered from the working directory).",
)
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--sync", is_flag=True, help="Force synchronous plugin dispatch.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    store_root: Path | None,
    config_path: str | None,
    sync: bool,
) -> None:
    """formpipe: reactive form rendering over a local form store."""
    settings = FormpipeSettings.from_cli(
        store_root=store_root,
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        sync=sync,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
