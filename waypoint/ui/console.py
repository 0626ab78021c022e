"""
Console factory for creating rich console instances.

This module provides a factory function to create and configure rich
Console instances with the Waypoint theme.
"""

from rich.console import Console

from waypoint.ui.theme import WAYPOINT_THEME

_console: Console | None = None


def get_console() -> Console:
    """
    Get the shared rich Console configured with the Waypoint theme.

    Returns
    -------
    Console
        Configured rich Console instance.

    Examples
    --------
    >>> console = get_console()
    >>> console.print("[success]Connected[/success]")
    """
    global _console
    if _console is None:
        _console = Console(theme=WAYPOINT_THEME, highlight=False)
    return _console
