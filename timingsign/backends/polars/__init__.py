"""In-memory Polars ledger and its file sinks/sources."""
