"""
MCP tool server connections for the Waypoint client.

This package provides a connection wrapper for a single stdio MCP server and
a manager that supervises many of them.
"""
