"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). Renderers are
dispatched by ``result.op`` in :func:`render_result`; unknown ops fall
through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from jewelctl.output.console import create_console, get_output, style_for_level

if TYPE_CHECKING:
    from rich.console import Console

    from jewelctl.services.result import ServiceResult


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

    items = result.data.get("items")
    if items and isinstance(items, list):
        ids = [str(item["id"]) for item in items if isinstance(item, dict) and "id" in item]
        return "\n".join(ids)

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="jewel.ok")
    op = Text(f"  {result.op}", style="jewel.op")
    console.print(Text.assemble(label, op))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="jewel.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="jewel.id")
    elif "price" in key:
        v = Text(f"{value:.2f}" if isinstance(value, float) else str(value), style="jewel.price")
    elif isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str))
    else:
        v = Text(str(value))
    console.print(Text.assemble(k, v))


def _fields(console: Console, data: dict[str, Any], keys: tuple[str, ...]) -> None:
    for key in keys:
        if key in data:
            _field(console, key, data[key])


def _render_meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(f"    {k}: {v}")


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="jewel.error")
    op = Text(f"  {result.op}", style="jewel.op")
    kind = Text(f" [{err.kind}]" if err else "", style="dim")
    console.print(Text.assemble(label, op, kind, f": {msg}"))

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Bracelet renderers ────────────────────────────────────────────────


def _render_fit(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _fields(
        console,
        result.data,
        (
            "wrist_circumference",
            "bead_diameter",
            "total_circumference",
            "available_bead_space",
            "max_bead_count",
            "recommended_bead_count",
        ),
    )


def _render_placements(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Letter placements as a table ordered by bead index."""
    d = result.data
    _status_line(console, result)
    _fields(console, d, ("text", "script", "positions", "start"))

    placements = sorted(d.get("placements", []), key=lambda p: p["position_index"])
    if placements:
        table = Table(show_header=True, pad_edge=False, expand=False)
        table.add_column("Index", justify="right")
        table.add_column("Letter")
        table.add_column("Component", style="jewel.id")
        for p in placements:
            component = p["component_id"] or Text("missing", style="jewel.warning")
            table.add_row(str(p["position_index"]), p["letter"], component)
        console.print()
        console.print(table)

    if d.get("missing"):
        missing = ", ".join(d["missing"])
        console.print(f"\n  [jewel.warning]missing letters[/jewel.warning]: {missing}")
    if verbose:
        for rec in d.get("recommendations", []):
            console.print(f"  [dim]hint[/dim] {rec}")


def _render_capacity(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    level = str(d.get("warning_level", ""))
    console.print(
        Text.assemble(("  level: ", "jewel.key"), (level, style_for_level(level)))
    )
    _fields(
        console,
        d,
        ("usage_percentage", "remaining_space", "available_bead_space", "can_add_more_beads"),
    )
    if "message" in d:
        _field(console, "message", d["message"])

    suggestions = d.get("suggestions", [])
    if suggestions:
        table = Table(title="Suggestions", show_header=True, pad_edge=False, expand=False)
        table.add_column("Type")
        table.add_column("Saves (cm)", justify="right")
        table.add_column("Description")
        for s in suggestions:
            table.add_row(s["type"], f"{s['space_saved']:.1f}", s["description"])
        console.print()
        console.print(table)


# ── Catalog renderers ─────────────────────────────────────────────────


def _render_items(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Templates or components as a table."""
    items = result.data.get("items", [])
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("ID", style="jewel.id", no_wrap=True)
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Price", style="jewel.price", justify="right")
    if verbose:
        table.add_column("Detail", style="dim")

    for item in items:
        kind = item.get("type") or item.get("category") or ""
        price = item.get("price", item.get("base_price", 0.0))
        row = [str(item["id"]), str(item.get("name", "")), str(kind), f"{price:.2f}"]
        if verbose:
            if "positions" in item:
                row.append(f"{len(item['positions'])} positions")
            else:
                row.append(f"{item.get('color', '')} {item.get('material', '')}".strip())
        table.add_row(*row)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} items")


# ── Session renderers ─────────────────────────────────────────────────


def _render_session(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    if not d.get("restored"):
        _status_line(console, result)
        _field(console, "restored", False)
        return

    lines = [
        f"step: {d.get('step')}",
        f"template: {d.get('template_id') or '-'}",
        f"saved at: {d.get('saved_at')}",
        f"total price: {d.get('total_price', 0.0):.2f}",
    ]
    if d.get("wrist_circumference") is not None:
        lines.append(f"wrist: {d['wrist_circumference']} cm")
    if d.get("custom_text"):
        lines.append(f"text: {d['custom_text']}")
    placements = d.get("placements", [])
    if placements:
        lines.append("")
        lines.extend(f"{p['position_id']}: {p['component_id']}" for p in placements)

    console.print(Panel("\n".join(lines), title="Saved design", border_style="dim", expand=False))
    if verbose:
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "bracelet_fit": _render_fit,
    "place_letters": _render_placements,
    "capacity": _render_capacity,
    "fetch_templates": _render_items,
    "fetch_components": _render_items,
    "search_components": _render_items,
    "session_show": _render_session,
}
