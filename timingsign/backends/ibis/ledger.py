"""
timingsign.backends.ibis.ledger
===============================

ibis-framework based ledger for durable or shared storage.

This backend keeps rows in a SQL table reachable through any ibis
connection (DuckDB by default), so several runs can write into one
database and be compared afterwards with plain ibis expressions.

- Backend-agnostic via ibis-framework
- Multi-ledger support through the `ledger_name` column
- Automatic timingsign_version tracking
- `table` property for ad-hoc ibis querying

Examples
--------
>>> from timingsign.backends.ibis.ledger import IbisLedger, create_test_connection
>>> from timingsign.core.names import Namespace
>>> conn = create_test_connection("duckdb")
>>> ledger = IbisLedger(conn, "scan")
>>> ledger.write_event(
...     time_index="t1", namespace=Namespace.OBS, kind="observation",
...     experiment_id="scan#1", step_key="look-1", payload_type="TimingObsBatch",
...     payload={"reference": [0.1], "probe": [0.4]}
... )
>>> int(ledger.table.count().execute())
1
>>> ledger.latest(namespace=Namespace.OBS).payload["probe"]
[0.4]
"""

from __future__ import annotations
import uuid as uuid_module
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

import ibis
import pandas as pd
from ibis import BaseBackend
from ibis.expr.types import Table

from timingsign.__version__ import __version__
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


def get_ledger_schema() -> ibis.Schema:
    """Get the standardized ledger schema using ibis.Schema."""
    return ibis.schema(
        [
            ("seq", "int64"),
            ("uuid", "string"),
            ("ledger_name", "string"),
            ("time_index", "string"),
            ("ts", "timestamp('UTC')"),
            ("namespace", "string"),
            ("kind", "string"),
            ("entity", "string"),
            ("snapshot_id", "string"),
            ("tag", "string"),
            ("payload_type", "string"),
            ("payload", "string"),  # JSON string
            ("timingsign_version", "string"),  # Auto-populated version
        ]
    )


class IbisLedger(LedgerOps):
    """
    Ledger stored in a table behind an ibis connection.

    Responsibilities:
    - Schema guarantee and table lifecycle
    - Automatic ledger_name and timingsign_version injection
    - Append order via a `seq` column shared by every ledger in the table

    `seq` is read from the table on every append, so several ledger objects
    (or processes that take turns) can write into one table. Concurrent
    writers need a backend-side lock or sequence.
    """

    def __init__(
        self,
        connection: BaseBackend,
        ledger_name: str = "default",
        table_name: str = "ledger",
    ):
        """Initialize ledger with connection and names.

        Parameters
        ----------
        connection : BaseBackend
            Ibis backend connection
        ledger_name : str
            Name of this ledger instance (for multi-ledger support)
        table_name : str
            Name of the table in the backend
        """
        self.connection = connection
        self.ledger_name = ledger_name
        self.table_name = table_name
        self._ensure_table_exists()

    def _ensure_table_exists(self) -> None:
        """Create table with standardized schema if it doesn't exist."""
        if self.table_name not in self.connection.list_tables():
            self.connection.create_table(self.table_name, schema=get_ledger_schema())

    def _next_seq(self) -> int:
        """One past the largest `seq` in the table, read at append time."""
        current = self.raw_table.seq.max().execute()
        return 1 if pd.isna(current) else int(current) + 1

    @property
    def table(self) -> Table:
        """
        Get ibis table filtered by ledger name.

        This is the main interface for querying - callers use this
        to build ibis expressions for filtering, aggregation, etc.
        """
        table = self.connection.table(self.table_name)
        return table.filter(table.ledger_name == self.ledger_name)

    @property
    def raw_table(self) -> Table:
        """Get raw ibis table without ledger filtering (meta-analysis across ledgers)."""
        return self.connection.table(self.table_name)

    # ---- LedgerBase interface ----

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
    ) -> "IbisLedger":
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        else:
            ts = ts.astimezone(timezone.utc)

        record = {
            "seq": self._next_seq(),
            "uuid": str(uuid_module.uuid4()),
            "ledger_name": self.ledger_name,
            "time_index": str(time_index),
            "ts": pd.Timestamp(ts),
            "namespace": namespace_value(namespace),
            "kind": kind,
            "entity": entity,
            "snapshot_id": snapshot_id,
            "tag": tag or "",
            "payload_type": payload_type,
            "payload": encode_payload(payload),
            "timingsign_version": __version__,
        }
        frame = pd.DataFrame([record], columns=list(get_ledger_schema().names))
        self.connection.insert(self.table_name, frame)
        return self

    class _Reader(LedgerReader):
        def __init__(self, table: Table) -> None:
            self.table = table

        def _filter(
            self,
            *,
            namespace: Optional[Any] = None,
            kind: Optional[str] = None,
            entity: Optional[str] = None,
            tag: Optional[str] = None,
        ) -> Table:
            t = self.table
            if namespace is not None:
                t = t.filter(t.namespace == namespace_value(namespace))
            if kind is not None:
                t = t.filter(t.kind == kind)
            if entity is not None:
                t = t.filter(t.entity == entity)
            if tag is not None:
                t = t.filter(t.tag == tag)
            return t

        @staticmethod
        def _to_row(rec: Dict[str, Any]) -> Row:
            ts = rec["ts"]
            if isinstance(ts, pd.Timestamp):
                ts = ts.to_pydatetime()
            return Row(
                uuid=rec["uuid"],
                time_index=rec["time_index"],
                ts=ts,
                namespace=rec["namespace"],
                kind=rec["kind"],
                entity=rec["entity"],
                snapshot_id=rec["snapshot_id"],
                tag=rec["tag"] or None,
                payload_type=rec["payload_type"],
                payload=PayloadRegistry.decode(
                    rec["payload_type"], decode_payload(rec["payload"])
                ),
            )

        def iter_rows(
            self,
            *,
            namespace: Optional[Any] = None,
            kind: Optional[str] = None,
            entity: Optional[str] = None,
            tag: Optional[str] = None,
        ) -> Iterator[Row]:
            t = self._filter(namespace=namespace, kind=kind, entity=entity, tag=tag)
            df = t.order_by(t.seq).to_pandas()
            for rec in df.to_dict("records"):
                yield self._to_row(rec)

        def latest(
            self,
            *,
            namespace: Optional[Any] = None,
            kind: Optional[str] = None,
            entity: Optional[str] = None,
            tag: Optional[str] = None,
        ) -> Optional[Row]:
            t = self._filter(namespace=namespace, kind=kind, entity=entity, tag=tag)
            df = t.order_by(t.seq.desc()).limit(1).to_pandas()
            if df.empty:
                return None
            return self._to_row(df.to_dict("records")[0])

        def count(self, **filters: Any) -> int:
            return int(self._filter(**filters).count().execute())

    def reader(self) -> LedgerReader:
        return IbisLedger._Reader(self.table)


def create_test_connection(backend: str = "duckdb") -> BaseBackend:
    """Create an in-memory connection for tests and throwaway runs.

    Parameters
    ----------
    backend : str
        Backend type (only "duckdb" supports inserts)

    Returns
    -------
    BaseBackend
        Ibis backend connection
    """
    if backend == "duckdb":
        return ibis.duckdb.connect(":memory:")
    raise ValueError(f"Unsupported backend: {backend}. Use 'duckdb'.")
