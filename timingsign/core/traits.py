"""
timingsign.core.traits
======================

`LedgerOps`: the typed vocabulary components use on top of any `LedgerBase`.

Components speak in experiments and looks (`experiment_id`, `step_key`,
`time_index`); backends store entities and snapshots. This mixin does the
translation in one place, so a backend only implements `append` and
`reader`.

Examples
--------
>>> from timingsign.backends.polars.ledger import PolarsLedger
>>> from timingsign.core.names import Namespace
>>> L = PolarsLedger()
>>> for look, (ref, probe) in enumerate([([1.0, 2.0], [3.0, 4.0]), ([5.0], [6.0])], 1):
...     L.write_event(time_index=f"t{look}", namespace=Namespace.OBS, kind="observation",
...                   experiment_id="scan#1", step_key=f"look-{look}",
...                   payload_type="TimingObsBatch",
...                   payload={"reference": ref, "probe": probe}, tag="obs")
>>> L.latest(namespace=Namespace.OBS, experiment_id="scan#1").snapshot_id
'look-2'
>>> L.collect_measurements(experiment_id="scan#1")
{'reference': [1.0, 2.0, 5.0], 'probe': [3.0, 4.0, 6.0]}
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from timingsign.core.ledger import LedgerBase, NamespaceLike, Row, namespace_value
from timingsign.core.names import ExperimentId, Namespace, Side, StepKey, TimeIndex

IdLike = Union[ExperimentId, StepKey, TimeIndex, str]

TIMING_SIDES = (Side.REFERENCE.value, Side.PROBE.value)


def _filters(
    namespace: Optional[NamespaceLike] = None,
    kind: Optional[str] = None,
    experiment_id: Optional[IdLike] = None,
    tag: Optional[str] = None,
) -> Dict[str, Optional[str]]:
    """Translate experiment vocabulary into reader filters."""
    return {
        "namespace": namespace_value(namespace) if namespace is not None else None,
        "kind": kind,
        "entity": str(experiment_id) if experiment_id else None,
        "tag": tag,
    }


class LedgerOps(LedgerBase):
    """Experiment-level writers and readers for a ledger backend."""

    def write_event(
        self,
        *,
        time_index: IdLike,
        namespace: NamespaceLike,
        kind: str,
        experiment_id: IdLike,
        step_key: IdLike,
        payload_type: str,
        payload: Dict[str, Any],
        tag: Optional[str] = None,
        ts: Optional[datetime] = None,
    ) -> None:
        """Append one event of an experiment look."""
        self.append(
            time_index=str(time_index),
            ts=ts or datetime.now(timezone.utc),
            namespace=namespace_value(namespace),
            kind=kind,
            entity=str(experiment_id),
            snapshot_id=str(step_key),
            payload_type=payload_type,
            payload=payload,
            tag=tag,
        )

    def emit(
        self,
        *,
        time_index: IdLike,
        experiment_id: IdLike,
        step_key: IdLike,
        topic: str,
        body: Dict[str, Any],
        tag: str = "signal",
        namespace: NamespaceLike = Namespace.SIGNALS,
    ) -> None:
        """Append a free-form signal (`topic` plus `body`) for an experiment look."""
        self.emit_signal(
            time_index=str(time_index),
            ts=datetime.now(timezone.utc),
            entity=str(experiment_id),
            snapshot_id=str(step_key),
            topic=topic,
            body=body,
            tag=tag,
            namespace=namespace_value(namespace),
        )

    def latest(
        self,
        *,
        namespace: Optional[NamespaceLike] = None,
        kind: Optional[str] = None,
        experiment_id: Optional[IdLike] = None,
        tag: Optional[str] = None,
    ) -> Optional[Row]:
        """Most recent matching row, or None."""
        return self.reader().latest(**_filters(namespace, kind, experiment_id, tag))

    def iter_ns(
        self,
        *,
        namespace: NamespaceLike,
        experiment_id: Optional[IdLike] = None,
        tag: Optional[str] = None,
    ) -> Iterable[Row]:
        """Rows of one namespace in append order."""
        return self.reader().iter_rows(
            **_filters(namespace, None, experiment_id, tag)
        )

    def collect_measurements(
        self,
        *,
        experiment_id: IdLike,
        sides: Sequence[str] = TIMING_SIDES,
        namespace: NamespaceLike = Namespace.OBS,
    ) -> Dict[str, List[float]]:
        """
        Current sample groups of an experiment.

        Every observation row carries the measurements that arrived for one
        look; a side's group is the concatenation of its lists, oldest first.
        """
        return self.reader().collect_measurements(
            entity=str(experiment_id),
            sides=tuple(sides),
            namespace=namespace_value(namespace),
        )
