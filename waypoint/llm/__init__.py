"""
AI backend connection modes for the Waypoint client.

This package provides a uniform chat contract over provider-specific wire
formats, with a direct-credential mode and a host-mediated mode.
"""
