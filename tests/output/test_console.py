"""Tests for the Rich console factory."""

from __future__ import annotations

from formpipe.output.console import create_console, get_output, style_for_kind


class TestConsole:
    def test_renders_to_buffer(self) -> None:
        console = create_console(no_color=True)
        console.print("hello")
        assert get_output(console) == "hello\n"

    def test_theme_styles_resolve(self) -> None:
        console = create_console(no_color=True)
        console.print("[fp.ok]done[/fp.ok]")
        assert get_output(console).strip() == "done"

    def test_width_override(self) -> None:
        assert create_console(width=60).width == 60

    def test_style_for_kind(self) -> None:
        assert style_for_kind("event") == "fp.kind.event"
        assert style_for_kind("survey") == ""
