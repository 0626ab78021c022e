"""
Waypoint theme definition for rich console styling.

This module defines the color theme used by the command-line interface,
with styles for connection statuses and tool output.
"""

from rich.theme import Theme

WAYPOINT_THEME = Theme(
    {
        # General styles
        "info": "cyan",
        "warning": "yellow",
        "error": "bright_red bold",
        "success": "green",
        "muted": "grey50",
        "border": "grey35",
        "highlight": "bold cyan",
        # Role styles
        "user": "bright_blue bold",
        "assistant": "bright_white",
        # Connection statuses
        "status.connected": "green",
        "status.connecting": "yellow",
        "status.disconnected": "grey50",
        "status.error": "bright_red",
        # Tool styles
        "tool": "bright_magenta bold",
        "tool.mcp": "bright_cyan",
        "code": "white",
    },
)
