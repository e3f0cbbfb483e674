"""
timingsign.sources.queue
========================

Sample sources feeding the sequential decision loop.

The loop only depends on the `SampleSource` protocol: "give me n more
reference measurements", "give me n more probe measurements" and "how many
are available". `QueueSampleSource` serves pre-recorded measurements
oldest-first; a live collector timing real requests implements the same
three methods.

Examples
--------
>>> from timingsign.sources.queue import MeasurementQueue, QueueSampleSource
>>> source = QueueSampleSource.from_values([1.0, 2.0, 3.0], [4.0, 5.0, 6.0])
>>> source.available_count()
(3, 3)
>>> source.next_reference(2)
[1.0, 2.0]
>>> source.available_count()
(1, 3)
>>> MeasurementQueue([0.5]).next(2)
Traceback (most recent call last):
...
timingsign.core.errors.InsufficientData: Requested 2 measurements, only 1 available
"""

from __future__ import annotations
from collections import deque
from typing import Iterable, List, Protocol, Tuple, runtime_checkable

from timingsign.core.errors import InsufficientData, InvalidInput
from timingsign.core.names import Side
from timingsign.stats.schemes.timing.core import check_measurement


@runtime_checkable
class SampleSource(Protocol):
    """Supplier of reference and probe measurements, oldest first."""

    def next_reference(self, n: int) -> List[float]: ...

    def next_probe(self, n: int) -> List[float]: ...

    def available_count(self) -> Tuple[int, int]: ...


class MeasurementQueue:
    """One side's measurements, consumed from the front."""

    def __init__(self, values: Iterable[float] = (), side: str = "") -> None:
        self.side = side
        self._queue = deque(check_measurement(v) for v in values)

    def push(self, value: float) -> None:
        self._queue.append(check_measurement(value))

    def available(self) -> int:
        return len(self._queue)

    def next(self, n: int) -> List[float]:
        """Pop exactly `n` oldest measurements."""
        if n < 1:
            raise InvalidInput(f"n must be >= 1, got {n}")
        if len(self._queue) < n:
            raise InsufficientData(n, len(self._queue), self.side)
        return [self._queue.popleft() for _ in range(n)]

    def __len__(self) -> int:
        return len(self._queue)


class QueueSampleSource:
    """A `SampleSource` backed by two in-memory queues."""

    def __init__(self, reference: MeasurementQueue, probe: MeasurementQueue) -> None:
        self.reference = reference
        self.probe = probe

    @classmethod
    def from_values(
        cls, reference: Iterable[float], probe: Iterable[float]
    ) -> "QueueSampleSource":
        return cls(
            MeasurementQueue(reference, Side.REFERENCE.value),
            MeasurementQueue(probe, Side.PROBE.value),
        )

    def next_reference(self, n: int) -> List[float]:
        return self.reference.next(n)

    def next_probe(self, n: int) -> List[float]:
        return self.probe.next(n)

    def available_count(self) -> Tuple[int, int]:
        return self.reference.available(), self.probe.available()
