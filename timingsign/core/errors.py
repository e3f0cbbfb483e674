"""
timingsign.core.errors
======================

Failures raised by the testing core. Neither is ever retried: both abort
the current test or sequential run.

>>> from timingsign.core.errors import InvalidInput, InsufficientData
>>> issubclass(InvalidInput, ValueError), issubclass(InsufficientData, ValueError)
(True, True)
"""

from __future__ import annotations


class InvalidInput(ValueError):
    """An empty group or an invalid measurement reached the core."""


class InsufficientData(ValueError):
    """A sample source cannot supply the requested number of measurements."""

    def __init__(self, requested: int, available: int, side: str = "") -> None:
        self.requested = requested
        self.available = available
        self.side = side
        where = f" on {side} side" if side else ""
        super().__init__(
            f"Requested {requested} measurements{where}, only {available} available"
        )
