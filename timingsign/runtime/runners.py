"""
timingsign.runtime.runners
==========================

Runners that execute experiment templates.

- `SequentialRunner`: add observations and analyze, one look at a time.
- `SequentialDecisionLoop`: pulls measurements from a `SampleSource`,
  grows both groups one observation at a time after an initial batch, and
  stops on the first rejection or at the maximum sample size.

Examples
--------
>>> import numpy as np
>>> from timingsign.runtime.runners import SequentialDecisionLoop
>>> from timingsign.sources.queue import QueueSampleSource
>>> from timingsign.stats.common.bootstrap import BootstrapTest
>>> loop = SequentialDecisionLoop(
...     engine=BootstrapTest(rounds=500, rng=np.random.default_rng(11)),
...     initial_sample_size=4, max_sample_size=10)
>>> verdict = loop.run(QueueSampleSource.from_values([5.0] * 10, [5.0] * 10))
>>> verdict.outcome.value, verdict.sample_count
('not_rejected', 10)
"""

from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from timingsign.backends.polars.ledger import PolarsLedger
from timingsign.core.errors import InsufficientData
from timingsign.core.names import Namespace, Side
from timingsign.core.traits import LedgerOps
from timingsign.runtime.experiment_template import AnalysisResult, ExperimentTemplate
from timingsign.sources.queue import SampleSource
from timingsign.stats.common.bootstrap import BootstrapDecision, BootstrapTest
from timingsign.stats.schemes.timing.experiments import TimingBootstrapTemplate

logger = logging.getLogger(__name__)

INITIAL_SAMPLE_SIZE = 4  # Minimum number of measurements per side.
MAX_SAMPLE_SIZE = 60  # Maximum number of measurements per side.


class SequentialRunner:
    """
    Basic sequential experiment runner.

    Provides a simple execution environment for experiment templates with:
    - Setup
    - Result history
    """

    def __init__(
        self, template: ExperimentTemplate, ledger: Optional[LedgerOps] = None
    ):
        self.template = template
        self._ledger = ledger
        self._results_history: List[AnalysisResult] = []

        if ledger is not None:
            self.setup(ledger)

    def setup(self, ledger: LedgerOps) -> None:
        """Setup the runner with a specific ledger backend."""
        self._ledger = ledger
        self.template.setup(ledger)

    def add_observations(self, **kwargs: Any) -> None:
        """Add observations through the template."""
        if self._ledger is None:
            raise RuntimeError(
                "Runner not setup. Call setup(ledger) first or provide ledger in constructor."
            )

        self.template.add_observations(**kwargs)

    def analyze(self) -> AnalysisResult:
        """Run analysis and store results."""
        if self._ledger is None:
            raise RuntimeError(
                "Runner not setup. Call setup(ledger) first or provide ledger in constructor."
            )

        result = self.template.analyze()
        self._results_history.append(result)
        return result

    def get_summary(self) -> Dict[str, Any]:
        """Get comprehensive summary including template and runner state."""
        summary = self.template.get_summary()
        summary.update(
            {
                "runner_type": "sequential",
                "total_looks": len(self._results_history),
                "is_stopped": (
                    self._results_history[-1].should_stop
                    if self._results_history
                    else False
                ),
            }
        )
        return summary

    def get_results_history(self) -> List[AnalysisResult]:
        """Get history of all analysis results."""
        return self._results_history.copy()

    def reset(self) -> None:
        """Reset both template and runner state."""
        self.template.reset()
        self._results_history.clear()


class Outcome(str, Enum):
    """Terminal states of a sequential run."""

    REJECTED = "rejected"
    NOT_REJECTED = "not_rejected"


@dataclass(frozen=True)
class Verdict:
    """Final verdict of a sequential run."""

    outcome: Outcome
    sample_count: int
    looks: int
    experiment_id: str
    decision: Optional[BootstrapDecision] = None

    @property
    def rejected(self) -> bool:
        return self.outcome is Outcome.REJECTED

    @property
    def message(self) -> str:
        if self.rejected:
            return "Null hypothesis rejected: blind sql injection highly likely"
        return "Null hypothesis not rejected"

    @property
    def exit_code(self) -> int:
        """Process exit status: 1 signals a rejection, 0 no rejection."""
        return 1 if self.rejected else 0


class SequentialDecisionLoop:
    """
    Sequential bootstrap testing over a `SampleSource`.

    The loop pulls `initial_sample_size` measurements per side, then runs
    the bootstrap test after every new pair until H0 is rejected or both
    groups hold `max_sample_size` measurements. Every look is written to
    the ledger.

    Parameters
    ----------
    engine : BootstrapTest, optional
        Test run at every look (default: 10,000 rounds, alpha 0.01)
    initial_sample_size : int
        Size of both groups at the first look
    max_sample_size : int
        Size of both groups at the last look
    ledger : LedgerOps, optional
        Event store; a fresh `PolarsLedger` per run when omitted
    experiment_id : str, optional
        Ledger entity of the run; generated per run when omitted
    """

    def __init__(
        self,
        engine: Optional[BootstrapTest] = None,
        initial_sample_size: int = INITIAL_SAMPLE_SIZE,
        max_sample_size: int = MAX_SAMPLE_SIZE,
        ledger: Optional[LedgerOps] = None,
        experiment_id: Optional[str] = None,
    ):
        if initial_sample_size < 1:
            raise ValueError(
                f"initial_sample_size must be >= 1, got {initial_sample_size}"
            )
        if max_sample_size < initial_sample_size:
            raise ValueError(
                f"max_sample_size ({max_sample_size}) must be >= "
                f"initial_sample_size ({initial_sample_size})"
            )
        self.engine = engine if engine is not None else BootstrapTest()
        self.initial_sample_size = initial_sample_size
        self.max_sample_size = max_sample_size
        self.ledger = ledger
        self.experiment_id = experiment_id
        self.last_runner: Optional[SequentialRunner] = None

    def check_source(self, source: SampleSource) -> None:
        """Fail with InsufficientData unless both sides can supply a full run."""
        reference, probe = source.available_count()
        for side, available in ((Side.REFERENCE, reference), (Side.PROBE, probe)):
            if available < self.max_sample_size:
                raise InsufficientData(self.max_sample_size, available, side.value)

    def _lifecycle(
        self, ledger: LedgerOps, experiment_id: str, kind: str, payload: Dict[str, Any]
    ) -> None:
        ledger.write_event(
            time_index="t0" if kind == "start" else "end",
            namespace=Namespace.RUNTIME,
            kind=kind,
            experiment_id=experiment_id,
            step_key=kind,
            payload_type="RuntimeLifecycle",
            payload=payload,
            tag="runtime",
        )

    def run(self, source: SampleSource) -> Verdict:
        """Run until rejection or the maximum sample size and return the verdict."""
        self.check_source(source)

        ledger = self.ledger if self.ledger is not None else PolarsLedger()
        experiment_id = self.experiment_id or f"timing-{uuid.uuid4().hex[:12]}"
        if ledger.latest(namespace=Namespace.OBS, experiment_id=experiment_id):
            raise RuntimeError(
                f"Experiment {experiment_id} already has observations in this ledger"
            )

        template = TimingBootstrapTemplate(
            experiment_id,
            engine=self.engine,
            initial_sample_size=self.initial_sample_size,
            max_sample_size=self.max_sample_size,
        )
        runner = SequentialRunner(template, ledger)
        self.last_runner = runner
        self._lifecycle(
            ledger,
            experiment_id,
            "start",
            {
                "initial_sample_size": self.initial_sample_size,
                "max_sample_size": self.max_sample_size,
            },
        )
        logger.info(
            f"Starting sequential bootstrap test {experiment_id}: "
            f"n={self.initial_sample_size}..{self.max_sample_size}, "
            f"rounds={self.engine.rounds}, alpha={self.engine.alpha}"
        )

        n = self.initial_sample_size
        runner.add_observations(
            reference=source.next_reference(n), probe=source.next_probe(n)
        )
        while True:
            result = runner.analyze()
            logger.debug(
                f"look {result.look_number} n={n}: "
                f"interval=[{result.lower}, {result.upper}] stop={result.should_stop}"
            )
            if result.should_stop:
                outcome = Outcome.REJECTED
                break
            if n >= self.max_sample_size:
                outcome = Outcome.NOT_REJECTED
                break
            runner.add_observations(
                reference=source.next_reference(1), probe=source.next_probe(1)
            )
            n += 1

        verdict = Verdict(
            outcome=outcome,
            sample_count=n,
            looks=template.current_look,
            experiment_id=experiment_id,
            decision=template.last_decision,
        )
        self._lifecycle(
            ledger,
            experiment_id,
            "stop",
            {"outcome": outcome.value, "sample_count": n, "looks": verdict.looks},
        )
        logger.info(f"{experiment_id}: {verdict.message} (n={n})")
        return verdict
