"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from formpipe.output.console import create_console, get_output, style_for_kind

if TYPE_CHECKING:
    from rich.console import Console

    from formpipe.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    if result.op == "render":
        return "\n".join(s["section_uid"] for s in result.data.get("sections", []))

    items = result.data.get("items")
    if items and isinstance(items, list):
        return "\n".join(str(item.get("id", "")) for item in items if isinstance(item, dict))

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="fp.ok")
    op = Text(f"  {result.op}", style="fp.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="fp.key")
    if key == "id" or key.endswith("_id") or key.endswith("_uid"):
        v = Text(str(value), style="fp.id")
    elif key == "title":
        v = Text(str(value), style="fp.title")
    elif isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _section_table(sections: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    """One row per field, grouped by section."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Section", style="fp.id", no_wrap=True)
    table.add_column("Field", no_wrap=True)
    table.add_column("Label")
    table.add_column("Value")
    table.add_column("Flags")
    if verbose:
        table.add_column("Message")

    for section in sections:
        section_label = section["section_uid"]
        fields = section.get("fields") or []
        if not fields:
            row = [section_label, "", section.get("label", ""), "", ""]
            if verbose:
                row.append("")
            table.add_row(*row)
            continue
        for field in fields:
            flags: list[str] = []
            if not field.get("visible", True):
                flags.append("[fp.hidden]hidden[/fp.hidden]")
            if not field.get("editable", True):
                flags.append("[fp.readonly]read-only[/fp.readonly]")
            if field.get("mandatory"):
                flags.append("mandatory")
            if field.get("error"):
                flags.append("[fp.error]error[/fp.error]")
            elif field.get("warning"):
                flags.append("[fp.warning]warning[/fp.warning]")
            value = field.get("value")
            row = [
                section_label,
                field["uid"],
                field.get("label", ""),
                "" if value is None else str(value),
                " ".join(flags),
            ]
            if verbose:
                row.append(field.get("error") or field.get("warning") or "")
            table.add_row(*row)
            section_label = ""
    return table


def _render_warnings(result: ServiceResult, console: Console) -> None:
    for warning in result.warnings:
        console.print(Text("  warning: ", style="fp.warning"), warning, end="")
        console.print()


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="fp.error")
    op = Text(f"  {result.op}", style="fp.op")
    sep = Text(": ")
    console.print(label, op, sep, msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Mutations ─────────────────────────────────────────────────────────


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render create_form/add_section/add_field/set_value results."""
    _status_line(console, result)
    for key in ("id", "form_id", "title", "kind", "section_uid", "field_uid", "value"):
        if key in result.data:
            _field(console, key, result.data[key])


def _render_init(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    for key in ("store_root", "config_path", "db_path"):
        if key in d:
            _field(console, key, d[key])
    if verbose and d.get("files_created"):
        for f in d["files_created"]:
            console.print(f"    {f}")


# ── Reads ─────────────────────────────────────────────────────────────


def _render_form(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render show_form as a metadata panel plus the raw section table."""
    d = result.data
    lines: list[str] = []
    for key in ("kind", "status", "report_date", "incident_date", "revision"):
        val = d.get(key)
        if val is not None:
            lines.append(f"{key}: {val}")
    if d.get("latitude") is not None and d.get("longitude") is not None:
        lines.append(f"coordinates: {d['latitude']}, {d['longitude']}")
    if verbose:
        for key in ("created", "modified"):
            if d.get(key):
                lines.append(f"{key}: {d[key]}")

    title = f"{d.get('id', '?')}: {d.get('title', 'Untitled')}"
    style = style_for_kind(str(d.get("kind", "")))
    console.print(Panel("\n".join(lines), title=title, border_style=style or "dim", expand=False))

    sections = d.get("sections", [])
    if sections:
        console.print(_section_table(sections, verbose=verbose))
    console.print(f"\n{len(sections)} sections")


def _render_rendered(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the merged view of a form."""
    _status_line(console, result)
    d = result.data
    _field(console, "form_id", d.get("form_id", ""))
    sections = d.get("sections", [])
    if sections:
        console.print(_section_table(sections, verbose=verbose))
    hidden = d.get("hidden_sections", [])
    console.print(f"\n{d.get('count', len(sections))} sections", end="")
    if hidden:
        console.print(f", hidden: {', '.join(hidden)}", end="")
    console.print()
    if verbose:
        _render_warnings(result, console)


def _render_form_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="fp.id", no_wrap=True)
    table.add_column("Title", style="fp.title")
    table.add_column("Kind")
    table.add_column("Status")
    for item in items:
        kind = str(item.get("kind", ""))
        table.add_row(
            str(item.get("id", "")),
            str(item.get("title", "")),
            Text(kind, style=style_for_kind(kind)),
            str(item.get("status") or ""),
        )
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} forms")


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "init_store": _render_init,
    "create_form": _render_mutation,
    "add_section": _render_mutation,
    "add_field": _render_mutation,
    "set_value": _render_mutation,
    "show_form": _render_form,
    "list_forms": _render_form_table,
    "render": _render_rendered,
}
