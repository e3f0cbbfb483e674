"""
timingsign.sources.text
=======================

Reader for recorded timing measurements in the plain-text exchange format::

    # comment lines (and blank lines) before the count are skipped
    <n> [anything else on the count line is ignored]
    x_1 x_2 ... x_n
    y_1 y_2 ... y_n

The first n values are the reference measurements, the next n the probe
measurements. Line breaks between values are not significant.

Examples
--------
>>> import io
>>> from timingsign.sources.text import parse_samples
>>> source = parse_samples(io.StringIO("# run 1\\n3\\n0.1 0.2 0.3\\n0.4 0.5 0.6\\n"))
>>> source.available_count()
(3, 3)
>>> source.next_probe(3)
[0.4, 0.5, 0.6]
"""

from __future__ import annotations
import logging
import re
from typing import IO, Iterable, List, Union

from timingsign.core.errors import InvalidInput
from timingsign.sources.queue import QueueSampleSource

logger = logging.getLogger(__name__)

# Only the leading integer of the count line is read; the rest is ignored.
_LEADING_INT = re.compile(r"[+-]?\d+")


def _read_count(lines: Iterable[str]) -> int:
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _LEADING_INT.match(stripped)
        if match is None:
            raise InvalidInput(f"Expected a sample count, got {stripped!r}")
        count = int(match.group(0))
        if count < 0:
            raise InvalidInput(f"Sample count must be non-negative, got {count}")
        return count
    raise InvalidInput("Input has no sample count line")


def parse_samples(stream: Union[IO[str], str]) -> QueueSampleSource:
    """Parse the text format into a `QueueSampleSource`."""
    lines = iter(stream.splitlines() if isinstance(stream, str) else stream)
    count = _read_count(lines)

    tokens: List[str] = []
    for line in lines:
        tokens.extend(line.split())
        if len(tokens) >= 2 * count:
            break

    if len(tokens) < 2 * count:
        raise InvalidInput(
            f"Expected {2 * count} measurements ({count} per side), got {len(tokens)}"
        )
    if len(tokens) > 2 * count:
        logger.warning(f"Ignoring {len(tokens) - 2 * count} trailing values")

    source = QueueSampleSource.from_values(tokens[:count], tokens[count : 2 * count])
    logger.debug(f"Parsed {count} measurements per side")
    return source
