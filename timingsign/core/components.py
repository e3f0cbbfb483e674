"""
timingsign.core.components
==========================

Base classes for components that write to and read from the ledger.

Components never talk to each other directly: each one reads what it
needs from the ledger and appends its own result, so a look is fully
described by the rows it produced.

Component Types:
- `Observer`: Validate and register raw observations
- `Statistic`: Compute and register statistical values from observations
- `Signaler`: Emit stop/continue decisions based on statistics

Examples
--------
>>> from timingsign.backends.polars.ledger import PolarsLedger
>>> from timingsign.core.names import Namespace
>>>
>>> class CountStat(Statistic):
...     def step(self, ledger, experiment_id, step_key, time_index):
...         n = ledger.reader().count(namespace=Namespace.OBS.value)
...         ledger.write_event(
...             time_index=time_index, namespace=self.ns_stats, kind="updated",
...             experiment_id=experiment_id, step_key=step_key,
...             payload_type="ObsCount", payload={"n": n}, tag=self.tag_stats,
...         )
>>>
>>> ledger = PolarsLedger()
>>> CountStat().step(ledger, "scan#1", "look-1", "t1")
>>> ledger.latest(namespace=Namespace.STATS).payload
{'n': 0}
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from timingsign.core.names import ExperimentId, Namespace, StepKey, TimeIndex
from timingsign.core.ledger import NamespaceLike

if TYPE_CHECKING:
    from timingsign.core.traits import LedgerOps


class ComponentBase(ABC):
    """
    Base class for all ledger components.

    Provides namespace conventions and requires subclasses to implement step().
    """

    @abstractmethod
    def step(
        self,
        ledger: "LedgerOps",
        experiment_id: Union[ExperimentId, str],
        step_key: Union[StepKey, str],
        time_index: Union[TimeIndex, str],
    ) -> None:
        """Execute this component's logic for a given experiment step."""


@dataclass(kw_only=True)
class Statistic(ComponentBase):
    """
    Base class for statistics updaters.

    Statistics read observations and compute statistical values,
    which they then write back to the ledger for use by other components.
    """

    ns_stats: NamespaceLike = Namespace.STATS
    tag_stats: str = "stat:generic"


@dataclass(kw_only=True)
class Signaler(ComponentBase):
    """
    Base class for signal emitters (e.g., stop/continue decisions).

    Signalers read the latest statistics and emit actionable signals
    about whether to continue or stop.
    """

    ns_sig: NamespaceLike = Namespace.SIGNALS
    tag_sig: str = "signal:generic"


@dataclass(kw_only=True)
class Observer(ComponentBase):
    """
    Base class for observation validators.

    Observers validate raw observations before they are registered and
    processed by statistical components.
    """

    ns_obs: NamespaceLike = Namespace.OBS
    tag_obs: str = "obs"
