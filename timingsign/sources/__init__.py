"""
timingsign.sources
==================

Where measurements come from. The sequential loop consumes any object
implementing `SampleSource`; this package ships an in-memory queue source
and a reader for the plain-text exchange format.
"""

from timingsign.sources.queue import MeasurementQueue, QueueSampleSource, SampleSource
from timingsign.sources.text import parse_samples

__all__ = ["MeasurementQueue", "QueueSampleSource", "SampleSource", "parse_samples"]
