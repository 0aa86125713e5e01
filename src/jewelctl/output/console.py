"""Rich Console factory and theme for jewelctl output.

Consoles render to a StringIO buffer so renderers keep the
``format_result() -> str`` contract. Rich drops colour codes on its own
when the output is not a terminal (tests, pipes).
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

JEWEL_THEME = Theme(
    {
        "jewel.ok": "bold green",
        "jewel.error": "bold red",
        "jewel.warning": "bold yellow",
        "jewel.op": "bold cyan",
        "jewel.key": "dim",
        "jewel.id": "bold blue",
        "jewel.price": "magenta",
        "jewel.level.low": "green",
        "jewel.level.medium": "yellow",
        "jewel.level.high": "bold yellow",
        "jewel.level.critical": "bold red",
    }
)

_LEVEL_STYLES: dict[str, str] = {
    "low": "jewel.level.low",
    "medium": "jewel.level.medium",
    "high": "jewel.level.high",
    "critical": "jewel.level.critical",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=JEWEL_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_level(level: str) -> str:
    """Rich style for a capacity warning level."""
    return _LEVEL_STYLES.get(level, "")
