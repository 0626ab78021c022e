"""
Console rendering for the Waypoint command-line interface.
"""
