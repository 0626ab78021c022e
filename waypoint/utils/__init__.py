"""
Utility helpers for the Waypoint client.
"""
