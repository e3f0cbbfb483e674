"""
timingsign.stats.schemes.timing.experiments
===========================================

Experiment template for sequential bootstrap testing of paired timings.

`TimingBootstrapTemplate` coordinates the observation component, the
bootstrap interval statistic and the interval signaler, registers the
design and turns ledger events into an `AnalysisResult` per look.

Examples
--------
>>> import numpy as np
>>> from timingsign.backends.polars.ledger import PolarsLedger
>>> from timingsign.stats.common.bootstrap import BootstrapTest
>>> from timingsign.stats.schemes.timing.experiments import TimingBootstrapTemplate
>>> template = TimingBootstrapTemplate(
...     "scan#1", engine=BootstrapTest(rounds=500, rng=np.random.default_rng(3)))
>>> template.setup(PolarsLedger())
>>> template.add_observations(reference=[5.0] * 4, probe=[5.0] * 4)
>>> result = template.analyze()
>>> result.should_stop, result.n_reference
(False, 4)
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from timingsign.core.names import Namespace
from timingsign.core.traits import LedgerOps
from timingsign.runtime.experiment_template import AnalysisResult, ExperimentTemplate
from timingsign.stats.common.bootstrap import BootstrapTest
from timingsign.stats.common.tags import BOOTSTRAP_INTERVAL_TAG, INTERVAL_DECISION_TAG
from timingsign.stats.schemes.timing.bootstrap import (
    BootstrapIntervalStatistic,
    IntervalSignaler,
)
from timingsign.stats.schemes.timing.core import TimingObservation


class TimingBootstrapTemplate(ExperimentTemplate):
    """
    Difference-of-means bootstrap test on reference and probe timings.

    Attributes:
        experiment_id: Unique identifier for the experiment
        engine: Bootstrap test shared by every look
        initial_sample_size: Planned first look size (design metadata)
        max_sample_size: Planned last look size (design metadata)
    """

    def __init__(
        self,
        experiment_id: str,
        engine: Optional[BootstrapTest] = None,
        initial_sample_size: Optional[int] = None,
        max_sample_size: Optional[int] = None,
    ):
        super().__init__(experiment_id)
        self.engine = engine if engine is not None else BootstrapTest()
        self.initial_sample_size = initial_sample_size
        self.max_sample_size = max_sample_size

    def configure_components(self) -> Dict[str, Any]:
        """Configure observation, statistic and signaler (run in this order)."""
        return {
            "observation": TimingObservation(),
            "statistic": BootstrapIntervalStatistic(engine=self.engine),
            "signaler": IntervalSignaler(),
        }

    def _populate_batch(self, batch: Any, **kwargs: Any) -> None:
        """Accept `reference=` and `probe=` measurement sequences."""
        if "reference" not in kwargs and "probe" not in kwargs:
            raise ValueError(
                "Unsupported observation format for TimingBootstrapTemplate; "
                "pass reference=[...] and probe=[...]"
            )
        batch.add_reference(kwargs.get("reference", ()))
        batch.add_probe(kwargs.get("probe", ()))

    def register_design(self, ledger: LedgerOps) -> None:
        """Register the bootstrap design."""
        ledger.write_event(
            namespace=Namespace.DESIGN,
            kind="experiment_design",
            payload_type="bootstrap_design",
            experiment_id=str(self.experiment_id),
            step_key="design",
            time_index="t0",
            payload={
                "method": "bootstrap_mean_difference",
                "interval": "percentile",
                "rounds": self.engine.rounds,
                "alpha": self.engine.alpha,
                "initial_sample_size": self.initial_sample_size,
                "max_sample_size": self.max_sample_size,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    def extract_results(self, ledger: LedgerOps) -> AnalysisResult:
        """Build the result of the current look from its statistic and signal rows."""
        signal = ledger.latest(
            namespace=Namespace.SIGNALS,
            experiment_id=str(self.experiment_id),
            tag=INTERVAL_DECISION_TAG,
        )
        if signal is None:
            raise ValueError("No signal events found")
        stat = ledger.latest(
            namespace=Namespace.STATS,
            experiment_id=str(self.experiment_id),
            tag=BOOTSTRAP_INTERVAL_TAG,
        )

        stat_payload = stat.payload if stat is not None else {}
        return AnalysisResult(
            should_stop=signal.payload.get("action") == "stop",
            statistic_value=float(stat_payload.get("observed_difference", 0.0)),
            look_number=self.current_look,
            lower=signal.payload.get("lower"),
            upper=signal.payload.get("upper"),
            n_reference=signal.payload.get("n_reference"),
            n_probe=signal.payload.get("n_probe"),
            additional_metrics={
                "reason": signal.payload.get("reason"),
                "rounds": stat_payload.get("rounds"),
                "alpha": stat_payload.get("alpha"),
            },
            statistic_event=stat,
            signal_event=signal,
        )

    def get_summary(self) -> Dict[str, Any]:
        """Summary extended with group sizes and the bootstrap design."""
        summary = super().get_summary()
        summary.update(
            {
                "experiment_type": "timing_bootstrap",
                "rounds": self.engine.rounds,
                "alpha": self.engine.alpha,
            }
        )

        if self._is_setup and self.ledger is not None:
            groups = self.ledger.collect_measurements(
                experiment_id=str(self.experiment_id)
            )
            summary.update(
                {
                    "n_reference": len(groups["reference"]),
                    "n_probe": len(groups["probe"]),
                }
            )

        return summary

    @property
    def last_decision(self):
        """The `BootstrapDecision` of the latest look, if any."""
        statistic = self.components.get("statistic")
        return getattr(statistic, "last_decision", None)
