"""ibis-framework ledger (DuckDB by default)."""
