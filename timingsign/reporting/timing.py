"""
timingsign.reporting.timing
===========================

Reporting for sequential timing runs: the interval trajectory across looks
and the final verdict, read back from the ledger.

Examples
--------
>>> import numpy as np
>>> from timingsign.backends.polars.ledger import PolarsLedger
>>> from timingsign.runtime.runners import SequentialDecisionLoop
>>> from timingsign.sources.queue import QueueSampleSource
>>> from timingsign.stats.common.bootstrap import BootstrapTest
>>> ledger = PolarsLedger()
>>> loop = SequentialDecisionLoop(
...     engine=BootstrapTest(rounds=300, rng=np.random.default_rng(2)),
...     initial_sample_size=2, max_sample_size=4, ledger=ledger, experiment_id="scan#1")
>>> _ = loop.run(QueueSampleSource.from_values([1.0] * 4, [1.0] * 4))
>>> rep = TimingReporter(ledger, "scan#1")
>>> rep.trajectory()["n_reference"].to_list()
[2, 3, 4]
>>> rep.verdict()["outcome"]
'not_rejected'
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

import polars as pl

from timingsign.core.names import Namespace
from timingsign.core.traits import LedgerOps
from timingsign.stats.common.tags import BOOTSTRAP_INTERVAL_TAG

_TRAJECTORY_SCHEMA = {
    "look": pl.Int64,
    "n_reference": pl.Int64,
    "n_probe": pl.Int64,
    "lower": pl.Float64,
    "upper": pl.Float64,
    "observed_difference": pl.Float64,
    "rejected": pl.Boolean,
}


@dataclass
class TimingReporter:
    """Reporter for a single sequential timing experiment."""

    ledger: LedgerOps
    experiment_id: str

    def trajectory(self) -> pl.DataFrame:
        """One row per look with the group sizes and the bootstrap interval."""
        records = []
        for look, row in enumerate(
            self.ledger.iter_ns(
                namespace=Namespace.STATS,
                experiment_id=self.experiment_id,
                tag=BOOTSTRAP_INTERVAL_TAG,
            ),
            1,
        ):
            p = row.payload
            records.append(
                {
                    "look": look,
                    "n_reference": int(p["n_reference"]),
                    "n_probe": int(p["n_probe"]),
                    "lower": float(p["lower"]),
                    "upper": float(p["upper"]),
                    "observed_difference": float(p["observed_difference"]),
                    "rejected": bool(p["rejected"]),
                }
            )
        return pl.DataFrame(records, schema=_TRAJECTORY_SCHEMA)

    def verdict(self) -> Optional[Dict[str, Any]]:
        """Payload of the run's stop event, or None while it is running."""
        row = self.ledger.latest(
            namespace=Namespace.RUNTIME, kind="stop", experiment_id=self.experiment_id
        )
        return row.payload if row is not None else None

    def summary_text(self) -> str:
        """Human-readable one-paragraph summary of the run."""
        traj = self.trajectory()
        verdict = self.verdict()
        if traj.height == 0:
            return f"{self.experiment_id}: no looks recorded"

        last = traj.row(-1, named=True)
        status = verdict["outcome"] if verdict else "running"
        return (
            f"{self.experiment_id}: {status} after {traj.height} look(s); "
            f"n={last['n_reference']}/{last['n_probe']}, "
            f"mean difference {last['observed_difference']:.6g}, "
            f"interval [{last['lower']:.6g}, {last['upper']:.6g}]"
        )
