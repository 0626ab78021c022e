"""
Configuration schema and loading for the Waypoint client.
"""
