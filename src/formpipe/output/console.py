"""Rich Console factory and theme for formpipe output.

Consoles render into a StringIO buffer so formatters keep the
``format_result() -> str`` contract. Rich drops color codes on its own
when the output is not a terminal (tests, pipes).
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

FORMPIPE_THEME = Theme(
    {
        "fp.ok": "bold green",
        "fp.error": "bold red",
        "fp.warning": "bold yellow",
        "fp.op": "bold cyan",
        "fp.key": "dim",
        "fp.id": "bold blue",
        "fp.title": "bold",
        "fp.hidden": "dim strike",
        "fp.readonly": "magenta",
        "fp.kind.event": "green",
        "fp.kind.enrollment": "blue",
    }
)

_KIND_STYLES: dict[str, str] = {
    "event": "fp.kind.event",
    "enrollment": "fp.kind.enrollment",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override terminal width (stable output in tests).
    """
    return Console(
        file=StringIO(),
        theme=FORMPIPE_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_kind(kind: str) -> str:
    """Return the Rich style name for a form kind."""
    return _KIND_STYLES.get(kind, "")
