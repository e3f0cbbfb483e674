"""
timingsign.stats.schemes.timing.core
====================================

Data structures and the observation component for paired timing
measurements.

A look registers one `MeasurementBatch`: the new reference measurements
and the new probe measurements that arrived since the previous look. The
current sample group of a side is the concatenation of all its batches.

Examples
--------
>>> from timingsign.backends.polars.ledger import PolarsLedger
>>> from timingsign.stats.schemes.timing.core import TimingObservation
>>> obs = TimingObservation()
>>> batch = obs.create_batch()
>>> batch.add_reference([0.12, 0.11])
>>> batch.add_probe([0.35, 0.36])
>>> ledger = PolarsLedger()
>>> obs.register_batch(ledger, "scan#1", "look-1", "t1", batch)
True
>>> ledger.collect_measurements(experiment_id="scan#1")["probe"]
[0.35, 0.36]
>>> bad = obs.create_batch(); bad.add_probe([-1.0]); bad.validate()
False
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, TypedDict

from timingsign.core.components import Observer
from timingsign.core.errors import InvalidInput
from timingsign.core.names import Side
from timingsign.core.traits import LedgerOps


# --- Type Definitions ---


class TimingObsBatch(TypedDict):
    """Payload structure for one observation batch."""

    reference: List[float]
    probe: List[float]


class BootstrapIntervalPayload(TypedDict):
    """Payload structure for bootstrap interval statistic events."""

    rejected: bool
    lower: float
    upper: float
    observed_difference: float
    n_reference: int
    n_probe: int
    rounds: int
    alpha: float


def check_measurement(value: Any) -> float:
    """Return `value` as float, or raise InvalidInput if it is not a valid timing."""
    try:
        measurement = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"Measurement is not a number: {value!r}") from exc
    if not math.isfinite(measurement):
        raise InvalidInput(f"Measurement must be finite, got {measurement}")
    if measurement < 0:
        raise InvalidInput(f"Measurement must be non-negative, got {measurement}")
    return measurement


# --- Data Classes ---


@dataclass
class MeasurementBatch:
    """
    New measurements for both sides, collected for one look.

    Invalid values are kept out of the batch and reported through
    `validation_errors`, so a batch can be inspected before registration.
    """

    reference: List[float] = field(default_factory=list)
    probe: List[float] = field(default_factory=list)

    timestamp: Optional[datetime] = None
    validation_errors: List[str] = field(default_factory=list)

    def _add(self, target: List[float], side: Side, values: Iterable[Any]) -> None:
        for value in values:
            try:
                target.append(check_measurement(value))
            except InvalidInput as exc:
                self.validation_errors.append(f"{side.value}: {exc}")

    def add_reference(self, values: Iterable[Any]) -> None:
        """Add reference measurements."""
        self._add(self.reference, Side.REFERENCE, values)

    def add_probe(self, values: Iterable[Any]) -> None:
        """Add probe measurements."""
        self._add(self.probe, Side.PROBE, values)

    def validate(self) -> bool:
        """Return True if no invalid measurement was offered to this batch."""
        return len(self.validation_errors) == 0

    def is_empty(self) -> bool:
        return not self.reference and not self.probe

    def to_payload(self) -> TimingObsBatch:
        """Convert to payload format for ledger registration."""
        return {"reference": list(self.reference), "probe": list(self.probe)}


@dataclass(kw_only=True)
class TimingObservation(Observer):
    """
    Observation component for paired timing experiments.

    Parameters
    ----------
    require_both_sides : bool, default=True
        Whether every batch must carry measurements for both sides
    tag_obs : str, default="obs"
        Tag to use for observation events
    """

    require_both_sides: bool = True

    def create_batch(self, timestamp: Optional[datetime] = None) -> MeasurementBatch:
        """Create a new, empty observation batch."""
        return MeasurementBatch(timestamp=timestamp)

    def register_batch(
        self,
        ledger: LedgerOps,
        experiment_id: str,
        step_key: str,
        time_index: str,
        batch: MeasurementBatch,
    ) -> bool:
        """
        Register an observation batch to the ledger.

        Returns
        -------
        bool
            True if registration succeeded, False if the batch was rejected
            (see `batch.validation_errors`)
        """
        if not batch.validate():
            return False

        if batch.is_empty():
            batch.validation_errors.append("Batch has no measurements")
            return False

        if self.require_both_sides and (not batch.reference or not batch.probe):
            batch.validation_errors.append("Both sides must have measurements")
            return False

        ledger.write_event(
            time_index=str(time_index),
            namespace=self.ns_obs,
            kind="observation",
            experiment_id=str(experiment_id),
            step_key=str(step_key),
            payload_type="TimingObsBatch",
            payload=dict(batch.to_payload()),
            tag=self.tag_obs,
            ts=batch.timestamp or datetime.now(timezone.utc),
        )
        return True

    def step(
        self, ledger: LedgerOps, experiment_id: str, step_key: str, time_index: str
    ) -> None:
        """Observations are registered through `register_batch`; nothing to do per look."""


def current_groups(ledger: LedgerOps, experiment_id: str) -> Dict[str, List[float]]:
    """Return the current reference and probe groups of an experiment."""
    return ledger.collect_measurements(experiment_id=str(experiment_id))
