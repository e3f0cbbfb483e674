"""
timingsign.stats.schemes.timing.bootstrap
=========================================

Bootstrap testing components for paired timing measurements.

This module applies the generic bootstrap from
`timingsign.stats.common.bootstrap` to the reference/probe groups stored in
the ledger.

Components:
- BootstrapIntervalStatistic: percentile interval of the mean difference
- IntervalSignaler: stop when the interval excludes zero

Examples
--------
>>> import numpy as np
>>> from timingsign.backends.polars.ledger import PolarsLedger
>>> from timingsign.stats.common.bootstrap import BootstrapTest
>>> from timingsign.stats.schemes.timing.core import TimingObservation
>>> ledger = PolarsLedger()
>>> obs = TimingObservation()
>>> batch = obs.create_batch()
>>> batch.add_reference([100.0] * 4); batch.add_probe([0.0] * 4)
>>> obs.register_batch(ledger, "scan#1", "look-1", "t1", batch)
True
>>> stat = BootstrapIntervalStatistic(
...     engine=BootstrapTest(rounds=500, rng=np.random.default_rng(1)))
>>> stat.step(ledger, "scan#1", "look-1", "t1")
>>> IntervalSignaler().step(ledger, "scan#1", "look-1", "t1")
>>> get_latest_decision(ledger, "scan#1")["action"]
'stop'
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from timingsign.core.components import Signaler, Statistic
from timingsign.core.errors import InvalidInput
from timingsign.core.names import Namespace
from timingsign.core.traits import LedgerOps
from timingsign.stats.common.bootstrap import BootstrapDecision, BootstrapTest
from timingsign.stats.common.tags import BOOTSTRAP_INTERVAL_TAG, INTERVAL_DECISION_TAG
from timingsign.stats.schemes.timing.core import BootstrapIntervalPayload, current_groups

logger = logging.getLogger(__name__)


def get_latest_statistic(
    ledger: LedgerOps, experiment_id: str, tag: str = BOOTSTRAP_INTERVAL_TAG
) -> Optional[Dict[str, Any]]:
    """Payload of the latest statistic row with `tag`, or None."""
    row = ledger.latest(namespace=Namespace.STATS, experiment_id=experiment_id, tag=tag)
    return row.payload if row is not None else None


def get_latest_decision(
    ledger: LedgerOps, experiment_id: str, tag: str = INTERVAL_DECISION_TAG
) -> Optional[Dict[str, Any]]:
    """Payload of the latest decision row with `tag`, or None."""
    row = ledger.latest(
        namespace=Namespace.SIGNALS, experiment_id=experiment_id, tag=tag
    )
    return row.payload if row is not None else None


@dataclass(kw_only=True)
class BootstrapIntervalStatistic(Statistic):
    """
    Bootstrap percentile interval of mean(reference) - mean(probe).

    Events consumed:
        - Namespace.OBS: TimingObsBatch observations

    Events produced:
        - Namespace.STATS: BootstrapInterval with bounds and group sizes

    Attributes:
        engine: The bootstrap test to run on the current groups
        tag_stats: Tag for statistic events (default "stat:bootstrap_interval")
    """

    engine: BootstrapTest = field(default_factory=BootstrapTest)
    tag_stats: str = BOOTSTRAP_INTERVAL_TAG
    last_decision: Optional[BootstrapDecision] = field(default=None, init=False)

    def step(
        self,
        ledger: LedgerOps,
        experiment_id: str,
        step_key: str,
        time_index: str,
    ) -> None:
        """Run the bootstrap on the current groups and write the interval."""
        groups = current_groups(ledger, str(experiment_id))
        if not groups["reference"] or not groups["probe"]:
            raise InvalidInput(
                f"Experiment {experiment_id} has an empty group: "
                f"{len(groups['reference'])} reference, {len(groups['probe'])} probe"
            )

        decision = self.engine.test(groups["reference"], groups["probe"])
        self.last_decision = decision
        logger.debug(
            f"{experiment_id} {step_key}: n={decision.n_reference}/{decision.n_probe} "
            f"interval=[{decision.lower:.6g}, {decision.upper:.6g}]"
        )

        payload: BootstrapIntervalPayload = {
            "rejected": decision.rejected,
            "lower": decision.lower,
            "upper": decision.upper,
            "observed_difference": decision.observed_difference,
            "n_reference": decision.n_reference,
            "n_probe": decision.n_probe,
            "rounds": decision.rounds,
            "alpha": decision.alpha,
        }

        ledger.write_event(
            time_index=time_index,
            namespace=self.ns_stats,
            kind="updated",
            experiment_id=str(experiment_id),
            step_key=str(step_key),
            payload_type="BootstrapInterval",
            payload=dict(payload),
            tag=self.tag_stats,
        )


@dataclass(kw_only=True)
class IntervalSignaler(Signaler):
    """
    Emit a decision for every look based on the latest bootstrap interval.

    Decision rule:
        - "stop" if lower > 0 or upper < 0 (H0 rejected)
        - "continue" otherwise

    Attributes:
        decision_topic: Tag of decision signals
        stat_tag: Tag of the statistic rows to read
    """

    decision_topic: str = INTERVAL_DECISION_TAG
    stat_tag: str = BOOTSTRAP_INTERVAL_TAG

    def step(
        self,
        ledger: LedgerOps,
        experiment_id: str,
        step_key: str,
        time_index: str,
    ) -> None:
        """Read the latest interval and emit stop/continue."""
        stat = get_latest_statistic(ledger, str(experiment_id), self.stat_tag)
        if not stat:
            return

        lower = float(stat["lower"])
        upper = float(stat["upper"])
        if lower > 0:
            action, reason = "stop", "reference_slower"
        elif upper < 0:
            action, reason = "stop", "probe_slower"
        else:
            action, reason = "continue", "interval_contains_zero"

        ledger.write_event(
            time_index=time_index,
            experiment_id=str(experiment_id),
            step_key=str(step_key),
            namespace=self.ns_sig,
            kind="decision",
            tag=self.decision_topic,
            payload_type="dict",
            payload={
                "action": action,
                "reason": reason,
                "lower": lower,
                "upper": upper,
                "n_reference": stat["n_reference"],
                "n_probe": stat["n_probe"],
            },
        )
