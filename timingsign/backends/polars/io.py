"""
timingsign.backends.polars.io
=============================

Pluggable persistence for the Polars-backed ledger via **sinks/sources**.

- Parquet file, CSV file
- `sink_for_path()` picks a sink from the file suffix

This module contains no ledger semantics, only I/O.

Doctest (smoke):
>>> import polars as pl
>>> from timingsign.backends.polars.io import ParquetFileSink, ParquetFileSource
>>> df = pl.DataFrame({"x":[1,2,3]})
>>> ParquetFileSink("_tmp.parquet").write(df)  # doctest: +SKIP
>>> _ = ParquetFileSource("_tmp.parquet").read()  # doctest: +SKIP
>>> type(sink_for_path("run.csv")).__name__
'CsvFileSink'
"""

from __future__ import annotations
import os
from typing import Protocol, Union

import polars as pl


class LedgerSink(Protocol):
    """A write-only sink: DataFrame -> storage."""

    def write(self, df: pl.DataFrame) -> None: ...


class LedgerSource(Protocol):
    """A read-only source: storage -> DataFrame."""

    def read(self) -> pl.DataFrame: ...


class ParquetFileSink:
    def __init__(self, path: str) -> None:
        self.path = path

    def write(self, df: pl.DataFrame) -> None:
        df.write_parquet(self.path)


class CsvFileSink:
    def __init__(self, path: str) -> None:
        self.path = path

    def write(self, df: pl.DataFrame) -> None:
        df.write_csv(self.path)


class ParquetFileSource:
    def __init__(self, path: str) -> None:
        self.path = path

    def read(self) -> pl.DataFrame:
        return pl.read_parquet(self.path)


class CsvFileSource:
    def __init__(self, path: str) -> None:
        self.path = path

    def read(self) -> pl.DataFrame:
        return pl.read_csv(self.path, try_parse_dates=True)


def sink_for_path(path: Union[str, "os.PathLike[str]"]) -> LedgerSink:
    """Return a Parquet or CSV sink depending on the path suffix."""
    path = os.fspath(path)
    suffix = os.path.splitext(path)[1].lower()
    if suffix == ".csv":
        return CsvFileSink(path)
    if suffix in (".parquet", ".pq"):
        return ParquetFileSink(path)
    raise ValueError(f"Unsupported ledger file suffix: {suffix!r}. Use .parquet or .csv.")


def source_for_path(path: Union[str, "os.PathLike[str]"]) -> LedgerSource:
    """Return a Parquet or CSV source depending on the path suffix."""
    path = os.fspath(path)
    suffix = os.path.splitext(path)[1].lower()
    if suffix == ".csv":
        return CsvFileSource(path)
    if suffix in (".parquet", ".pq"):
        return ParquetFileSource(path)
    raise ValueError(f"Unsupported ledger file suffix: {suffix!r}. Use .parquet or .csv.")
