"""
timingsign.core.names
=====================

Typed names shared across the package.

- `Namespace`: an Enum for well-known ledger namespaces.
- `Side`: the two labelled measurement populations.
- `ExperimentId`, `StepKey`, `TimeIndex`: NewType wrappers for clarity.

Examples
--------
>>> from timingsign.core.names import Namespace, Side, ExperimentId
>>> Namespace.OBS.value
'obs'
>>> Side.PROBE.value
'probe'
>>> eid = ExperimentId("scan#1"); isinstance(eid, str)
True
"""

from __future__ import annotations
from enum import Enum
from typing import NewType


class Namespace(str, Enum):
    """Well-known ledger namespaces.

    - OBS: raw timing observations
    - STATS: statistics (derived)
    - SIGNALS: emitted decisions
    - DESIGN: experiment design registered at setup
    - RUNTIME: lifecycle events (start/stop) of a sequential run
    """

    OBS = "obs"
    STATS = "stats"
    SIGNALS = "signals"
    DESIGN = "design"
    RUNTIME = "runtime"


class Side(str, Enum):
    """The two measured populations."""

    REFERENCE = "reference"
    PROBE = "probe"


# Typed aliases for logical identifiers (thin wrappers over str).
ExperimentId = NewType("ExperimentId", str)
StepKey = NewType("StepKey", str)
TimeIndex = NewType("TimeIndex", str)
