"""
timingsign.runtime.experiment_template
======================================

Base classes and infrastructure for experiment templates.

A template owns the experiment logic (components, design, result
extraction) while runners own the execution strategy.

Examples
--------
>>> from timingsign.backends.polars.ledger import PolarsLedger
>>> from timingsign.runtime.experiment_template import ExperimentTemplate, AnalysisResult
>>> from timingsign.stats.schemes.timing.core import TimingObservation
>>>
>>> class MyTemplate(ExperimentTemplate):
...     def configure_components(self): return {"observation": TimingObservation()}
...     def register_design(self, ledger): pass
...     def extract_results(self, ledger):
...         return AnalysisResult(should_stop=False, statistic_value=0.0, look_number=self.current_look)
...     def _populate_batch(self, batch, **kwargs): batch.add_reference(kwargs["reference"]); batch.add_probe(kwargs["probe"])
>>>
>>> template = MyTemplate("scan#1")
>>> template.setup(PolarsLedger())
>>> template.add_observations(reference=[0.1], probe=[0.2])
>>> template.analyze().look_number
1
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from timingsign.core.errors import InvalidInput
from timingsign.core.traits import LedgerOps


@dataclass
class AnalysisResult:
    """Results from a single analysis look."""

    # Core results
    should_stop: bool
    statistic_value: float
    look_number: int

    # Interval and group sizes
    lower: Optional[float] = None
    upper: Optional[float] = None
    n_reference: Optional[int] = None
    n_probe: Optional[int] = None

    # Method-specific results
    additional_metrics: Dict[str, Any] = field(default_factory=dict)

    # Raw event data for advanced use
    statistic_event: Optional[Any] = None
    signal_event: Optional[Any] = None


class ExperimentTemplate(ABC):
    """
    Base class for portable experiment templates.

    Encapsulates all the logic for a specific type of experiment including:
    - Design parameters and validation
    - Data ingestion and validation
    - Component configuration (observation, statistic, signaler)
    - Results interpretation
    """

    def __init__(self, experiment_id: str):
        self.experiment_id = experiment_id
        self.ledger: Optional[LedgerOps] = None
        self.components: Dict[str, Any] = {}
        self._is_setup = False
        self._current_look = 0

    @property
    def current_look(self) -> int:
        return self._current_look

    @abstractmethod
    def configure_components(self) -> Dict[str, Any]:
        """
        Configure the components.

        Returns
        -------
        Dict[str, Any]
            Dictionary with at least an 'observation' entry providing
            `create_batch()` and `register_batch()`, plus the components
            whose `step()` is run on every look, in order.
        """

    @abstractmethod
    def register_design(self, ledger: LedgerOps) -> None:
        """Register the experimental design to the ledger."""

    @abstractmethod
    def extract_results(self, ledger: LedgerOps) -> AnalysisResult:
        """Extract analysis results from ledger events."""

    @abstractmethod
    def _populate_batch(self, batch: Any, **kwargs: Any) -> None:
        """Populate the observation batch with data. Subclasses implement specific logic."""

    def setup(self, ledger: LedgerOps) -> None:
        """Setup the template with a specific ledger backend."""
        self.ledger = ledger
        self.components = self.configure_components()
        self.register_design(ledger)
        self._is_setup = True

    def add_observations(self, **kwargs: Any) -> None:
        """Add observations using the configured observation component."""
        if not self._is_setup or self.ledger is None:
            raise RuntimeError("Template not setup. Call setup(ledger) first.")

        observation = self.components["observation"]
        batch = observation.create_batch()
        self._populate_batch(batch, **kwargs)

        look = self._current_look + 1
        success = observation.register_batch(
            self.ledger, self.experiment_id, f"look-{look}", f"t{look}", batch
        )
        if not success:
            raise InvalidInput(
                f"Failed to register observations: {batch.validation_errors}"
            )
        self._current_look = look

    def analyze(self) -> AnalysisResult:
        """Run the component pipeline for the current look and return results."""
        if not self._is_setup or self.ledger is None:
            raise RuntimeError("Template not setup. Call setup(ledger) first.")

        if self._current_look == 0:
            raise ValueError(
                "No observations registered yet. Call add_observations() first."
            )

        time_index = f"t{self._current_look}"
        step_key = f"look-{self._current_look}"

        for component in self.components.values():
            if hasattr(component, "step"):
                component.step(
                    self.ledger, str(self.experiment_id), step_key, time_index
                )

        return self.extract_results(self.ledger)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the experiment state."""
        if not self._is_setup:
            return {
                "experiment_id": str(self.experiment_id),
                "status": "not_setup",
                "current_look": self._current_look,
            }

        return {
            "experiment_id": str(self.experiment_id),
            "status": "ready",
            "current_look": self._current_look,
            "components": list(self.components.keys()),
        }

    def reset(self) -> None:
        """Reset the look counter (the ledger is left untouched)."""
        self._current_look = 0
