"""Rich Console factory, theme, and color-mode handling for forge output.

``create_console`` renders to a StringIO buffer (used by tests and anything
that needs the text back). ``stderr_console`` writes straight to stderr for
error reporting. In non-TTY environments Rich disables color codes unless
the color mode forces them.
"""

from __future__ import annotations

import os
import sys
from io import StringIO

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

from forgectl.config.models import ColorMode

FORGE_THEME = Theme(
    {
        "forge.error": "bold red",
        "forge.warning": "bold yellow",
        "forge.hint": "dim",
        "forge.command": "cyan",
        "forge.group": "bold blue",
        "forge.path": "dim",
    }
)

_ALWAYS = frozenset({"always", "on", "true", "yes", "1"})
_NEVER = frozenset({"never", "off", "false", "disable", "no", "0"})


def normalize_color_mode(value: str | None) -> ColorMode:
    """Map user-provided ``--color`` values (and aliases) to a ColorMode.

    Examples:
        >>> normalize_color_mode("on")
        'always'
        >>> normalize_color_mode("disable")
        'never'
        >>> normalize_color_mode(None)
        'auto'
    """
    if not value:
        return "auto"
    normalized = value.strip().lower()
    if normalized in _ALWAYS:
        return "always"
    if normalized in _NEVER:
        return "never"
    return "auto"


def resolve_color(mode: ColorMode) -> bool:
    """Resolve a ColorMode to a yes/no decision for stderr output.

    ``auto`` is off when ``NO_COLOR`` is set, otherwise it defers to Rich's
    terminal detection (``FORCE_COLOR`` and whether stderr is a TTY).
    """
    if mode == "always":
        return True
    if mode == "never" or os.environ.get("NO_COLOR"):
        return False
    return Console(stderr=True).color_system is not None


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=FORGE_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def stderr_console(*, color: bool) -> Console:
    """Console bound to the current ``sys.stderr`` with color forced on or off."""
    return Console(
        file=sys.stderr,
        theme=FORGE_THEME,
        force_terminal=color,
        no_color=not color,
        highlight=False,
        soft_wrap=True,
    )


def print_error(message: str, *, color: bool = False, hint: str | None = None) -> None:
    """Write a terse ``ERROR:`` line (and optional hint) to stderr."""
    console = stderr_console(color=color)
    console.print(f"[forge.error]ERROR:[/forge.error] {escape(message)}")
    if hint:
        console.print(f"[forge.hint]{escape(hint)}[/forge.hint]")
