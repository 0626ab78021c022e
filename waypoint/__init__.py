"""
Core package for the Waypoint MCP orchestration client.

This package provides the building blocks for conversing with an AI backend
while pulling live context from external MCP tool servers. It pairs a
connection manager for tool servers with a token-bounded context sampler
behind one AI connection abstraction.
"""

__version__ = "0.1.0"
