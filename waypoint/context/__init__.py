"""
Context sampling for the Waypoint client.

This package reduces raw game context to a token-bounded payload for the AI
backend.
"""
