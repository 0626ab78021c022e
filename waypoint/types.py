"""
Type definitions and aliases for the Waypoint client.

This module provides common type aliases used throughout the codebase to
ensure consistency and type safety.
"""

from typing import Any, Callable, Dict, List

# Message types for backend interactions
MessageDict = Dict[str, Any]

# Tool definitions in backend wire format
ToolDefinition = Dict[str, Any]
ToolDefinitions = List[ToolDefinition]

# Listener unsubscribe handle
Unsubscribe = Callable[[], None]
