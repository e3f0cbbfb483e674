"""
timingsign.backends.polars.ledger
=================================

In-memory ledger held in a Polars frame; the default store of a run.

Appends are buffered as plain records and folded into the frame on the
next read, so a look costs one small append per component rather than a
frame concatenation each. A `seq` column records append order, as in the
ibis backend. Rebuilding the sample groups decodes only the payload column
of the entity's observation rows, with a Polars JSON expression.

No persistence here (see `timingsign.backends.polars.io`).

Examples
--------
>>> from timingsign.backends.polars.ledger import PolarsLedger
>>> from timingsign.core.names import Namespace
>>> L = PolarsLedger()
>>> L.write_event(time_index="t1", namespace=Namespace.OBS, kind="observation",
...               experiment_id="scan#1", step_key="look-1",
...               payload_type="TimingObsBatch",
...               payload={"reference": [0.12], "probe": [0.31]}, tag="obs")
>>> L.reader().count(namespace=Namespace.OBS.value)
1
>>> L.frame().select("seq", "entity", "snapshot_id").row(0)
(1, 'scan#1', 'look-1')
"""

from __future__ import annotations
import uuid
from dataclasses import fields
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence

import polars as pl

from timingsign.core.ledger import (
    LedgerReader,
    NamespaceLike,
    PayloadRegistry,
    Row,
    decode_payload,
    encode_payload,
    namespace_value,
)
from timingsign.core.traits import LedgerOps

LEDGER_SCHEMA: Dict[str, Any] = {
    "seq": pl.Int64,
    "uuid": pl.Utf8,
    "time_index": pl.Utf8,
    "ts": pl.Datetime(time_unit="us", time_zone="UTC"),
    "namespace": pl.Utf8,
    "kind": pl.Utf8,
    "entity": pl.Utf8,  # experiment_id
    "snapshot_id": pl.Utf8,  # step_key, e.g. "look-3"
    "tag": pl.Utf8,
    "payload_type": pl.Utf8,
    "payload": pl.Utf8,  # JSON
}

_ROW_FIELDS = tuple(f.name for f in fields(Row) if f.name != "payload")


def _as_utc(ts: datetime) -> datetime:
    return ts.astimezone(timezone.utc) if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class PolarsLedger(LedgerOps):
    """Append-only ledger over a Polars frame with a JSON payload column."""

    def __init__(self, df: Optional[pl.DataFrame] = None) -> None:
        self._df = pl.DataFrame(schema=LEDGER_SCHEMA)
        self._pending: List[Dict[str, Any]] = []
        self._seq = 0
        if df is not None:
            self.replace_with_frame(df)

    def append(
        self,
        *,
        time_index: str,
        ts: datetime,
        namespace: NamespaceLike,
        kind: str,
        entity: str,
        snapshot_id: str,
        payload_type: str,
        payload: Dict[str, Any],
        tag: Optional[str] = None,
    ) -> "PolarsLedger":
        self._seq += 1
        self._pending.append(
            {
                "seq": self._seq,
                "uuid": str(uuid.uuid4()),
                "time_index": time_index,
                "ts": _as_utc(ts),
                "namespace": namespace_value(namespace),
                "kind": kind,
                "entity": entity,
                "snapshot_id": snapshot_id,
                "tag": tag,
                "payload_type": payload_type,
                "payload": encode_payload(payload),
            }
        )
        return self

    def _materialize(self) -> pl.DataFrame:
        if self._pending:
            batch = pl.DataFrame(self._pending, schema=LEDGER_SCHEMA)
            self._df = pl.concat([self._df, batch], how="vertical_relaxed")
            self._pending = []
        return self._df

    class _Reader(LedgerReader):
        def __init__(self, df: pl.DataFrame) -> None:
            self.df = df

        def _select(self, **filters: Any) -> pl.DataFrame:
            if filters.get("namespace") is not None:
                filters["namespace"] = namespace_value(filters["namespace"])
            predicates = [
                pl.col(column) == value
                for column, value in filters.items()
                if value is not None
            ]
            return self.df.filter(*predicates) if predicates else self.df

        @staticmethod
        def _to_row(rec: Dict[str, Any]) -> Row:
            payload = PayloadRegistry.decode(
                rec["payload_type"], decode_payload(rec["payload"])
            )
            return Row(**{name: rec[name] for name in _ROW_FIELDS}, payload=payload)

        def iter_rows(
            self,
            *,
            namespace: Optional[str] = None,
            kind: Optional[str] = None,
            entity: Optional[str] = None,
            tag: Optional[str] = None,
        ) -> Iterator[Row]:
            selected = self._select(namespace=namespace, kind=kind, entity=entity, tag=tag)
            return (self._to_row(rec) for rec in selected.iter_rows(named=True))

        def latest(
            self,
            *,
            namespace: Optional[str] = None,
            kind: Optional[str] = None,
            entity: Optional[str] = None,
            tag: Optional[str] = None,
        ) -> Optional[Row]:
            selected = self._select(namespace=namespace, kind=kind, entity=entity, tag=tag)
            if selected.is_empty():
                return None
            return self._to_row(selected.row(-1, named=True))

        def count(self, **filters: Any) -> int:
            return self._select(**filters).height

        def collect_measurements(
            self,
            *,
            entity: str,
            sides: Sequence[str],
            namespace: Optional[str] = None,
        ) -> Dict[str, List[float]]:
            groups = self._select(namespace=namespace, entity=entity).select(
                pl.col("payload")
                .str.json_decode(pl.Struct({side: pl.List(pl.Float64) for side in sides}))
                .alias("batch")
            ).unnest("batch")
            return {
                side: groups.get_column(side).explode().drop_nulls().to_list()
                for side in sides
            }

    def reader(self) -> LedgerReader:
        return PolarsLedger._Reader(self._materialize())

    def frame(self) -> pl.DataFrame:
        """Copy of the ledger frame, pending appends included."""
        return self._materialize().clone()

    def replace_with_frame(self, df: pl.DataFrame) -> None:
        """
        Load a previously written frame.

        Missing columns are added as nulls. A frame without `seq` is taken
        to be in append order; later appends continue after its last `seq`.
        """
        if "seq" not in df.columns:
            df = df.with_row_index("seq", offset=1).with_columns(pl.col("seq").cast(pl.Int64))
        df = df.with_columns(
            [
                pl.lit(None, dtype=dtype).alias(column)
                for column, dtype in LEDGER_SCHEMA.items()
                if column not in df.columns
            ]
        )
        self._df = df.select(list(LEDGER_SCHEMA)).sort("seq")
        self._pending = []
        self._seq = int(self._df["seq"].max() or 0)
