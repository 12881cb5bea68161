"""
Report Console

One themed Rich Console shared by the streamed check lines, the summary
and --show-config. Markup names map onto severity tiers:

    [pass] [info] [warning] [error] [heading]

Usage:
    from nethealth.console import get_console
    get_console().print("[pass]✓[/pass] systemd-networkd is active and running")
"""

import threading
from typing import IO, Optional

from rich.console import Console
from rich.theme import Theme

_shared: Optional[Console] = None
_guard = threading.Lock()

HEALTHCHECK_THEME = Theme({
    "pass": "green",
    "info": "blue",
    "warning": "yellow",
    "error": "red",
    "heading": "bold blue",
    "dim": "dim white",
})


def build_console(file: Optional[IO[str]] = None, no_color: bool = False,
                  width: Optional[int] = None) -> Console:
    """
    Create a report console.

    Highlighting is off: check messages carry addresses and unit names that
    Rich would otherwise recolor mid-line.
    """
    return Console(
        file=file,
        theme=HEALTHCHECK_THEME,
        no_color=no_color or None,
        color_system=None if no_color else "auto",
        width=width,
        highlight=False,
    )


def get_console(no_color: Optional[bool] = None) -> Console:
    """Return the process-wide console, creating it on first use."""
    global _shared
    with _guard:
        if _shared is None:
            _shared = build_console(no_color=bool(no_color))
        return _shared


def reset_console() -> None:
    """Forget the shared console (tests)."""
    global _shared
    with _guard:
        _shared = None
