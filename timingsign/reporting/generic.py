"""
timingsign.reporting.generic
============================

A scheme-agnostic reporter that shows ledger entities, namespaces and
namespace x kind counts, using ibis expressions over any ledger backend.

Examples
--------
>>> from timingsign.backends.polars.ledger import PolarsLedger
>>> from timingsign.core.names import Namespace
>>> from timingsign.reporting.generic import LedgerReporter
>>> L = PolarsLedger()
>>> L.write_event(time_index="t1", namespace=Namespace.OBS, kind="observation",
...               experiment_id="scan#1", step_key="look-1",
...               payload_type="TimingObsBatch", payload={"reference": [1.0], "probe": [2.0]})
>>> rep = LedgerReporter(L)
>>> rep.unique_namespaces()
['obs']
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import ibis

if TYPE_CHECKING:
    from timingsign.core.traits import LedgerOps


@dataclass
class LedgerReporter:
    """
    A generic, scheme-agnostic reporter for any experiment ledger.

    ibis-backed ledgers are queried in place; the Polars ledger is wrapped
    in an in-memory ibis table.
    """

    ledger: "LedgerOps"

    def ledger_table(self) -> Any:
        """Return the ledger rows as an ibis table expression."""
        table = getattr(self.ledger, "table", None)
        if table is not None:
            return table
        return ibis.memtable(self.ledger.frame())

    def _distinct(self, column: str) -> list[str]:
        table = self.ledger_table()
        values = table.select(column).distinct().to_pandas()[column]
        return sorted(v for v in values if v is not None)

    def unique_entities(self) -> list[str]:
        """List all unique experiment entities."""
        return self._distinct("entity")

    def unique_namespaces(self) -> list[str]:
        """List all unique event namespaces."""
        return self._distinct("namespace")

    def unique_kinds(self) -> list[str]:
        """List all unique event kinds."""
        return self._distinct("kind")

    def namespace_kind_counts(self) -> Any:
        """
        Return counts of events grouped by namespace and kind.

        Returns
        -------
        ibis.Table
            Table with namespace, kind, and count columns
        """
        table = self.ledger_table()
        return (
            table.group_by([table.namespace, table.kind])
            .aggregate(count=ibis._.count())
            .order_by(["namespace", "kind"])
        )
