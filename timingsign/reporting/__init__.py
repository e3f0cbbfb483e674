"""Ledger reporting: generic event counts and timing-run trajectories."""
