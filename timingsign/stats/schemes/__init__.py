"""
Problem-specific statistical schemes.

- `timing`: paired reference/probe timing measurements
"""
