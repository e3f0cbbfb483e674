"""Ledger storage backends."""
