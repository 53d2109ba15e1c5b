"""Tests for top-level help and version output."""

from __future__ import annotations

from click.testing import CliRunner

from formpipe import __version__
from formpipe.cli import cli


class TestHelp:
    def test_root_help_lists_commands(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for name in ("init", "form", "section", "field", "value", "show", "render"):
            assert name in result.output

    def test_no_subcommand_prints_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_render_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["render", "--help"])
        assert result.exit_code == 0
        assert "FORM_ID" in result.output
        assert "--timeout" in result.output
