"""
Application-wide constants for the Waypoint client.

This module defines constants used throughout the application to ensure
consistency and maintainability.
"""

# Configuration file names
CONFIG_FILE_NAME: str = "config.toml"

# Application directories
APP_NAME: str = "waypoint"
CONFIG_DIR_NAME: str = ".waypoint"

# Environment variables
API_KEY_ENV_VARS: tuple[str, ...] = ("WAYPOINT_API_KEY", "API_KEY")
BASE_URL_ENV_VAR: str = "WAYPOINT_BASE_URL"

# MCP client identity
CLIENT_NAME: str = "waypoint-mcp-client"

# Tool routing
DEFAULT_TOOL_CHANNEL: str = "default"
TOOL_NAME_SEPARATOR: str = "__"

# Token estimation
DEFAULT_CHARS_PER_TOKEN: int = 4
IMAGE_BYTES_PER_TOKEN: int = 750
TRUNCATION_MARKER: str = "\n... (truncated)"
SUMMARY_PLACEHOLDER: str = "<data>"
IMPORTANT_SAVEFILE_FIELDS: frozenset[str] = frozenset(
    {"health", "position", "inventory", "level", "stats", "progress"},
)

# Sampling defaults
DEFAULT_MAX_CONTEXT_TOKENS: int = 4000
DEFAULT_CHUNK_SIZE: int = 500
DEFAULT_CHUNK_OVERLAP: int = 50

# Generation defaults
DEFAULT_MAX_OUTPUT_TOKENS: int = 4096
DEFAULT_TEMPERATURE: float = 1.0
DEFAULT_REQUEST_TIMEOUT_SEC: float = 60.0
ANTHROPIC_API_VERSION: str = "2023-06-01"

# Path resolution
DEFAULT_ENCODING: str = "utf-8"
