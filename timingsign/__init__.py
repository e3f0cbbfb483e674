"""
timingsign: sequential bootstrap testing for timing side channels.

A *reference* request and a *probe* request are timed over and over. After
every new pair of measurements, a difference-of-means bootstrap test with a
percentile confidence interval decides whether the probe is systematically
slower (or faster) than the reference. A rejection of

    H0: both timing distributions share the same central tendency

is evidence of a blind, timing-based injection. The test runs as early as a
small initial batch allows and stops at a fixed maximum sample size.

Every look is appended to a typed, append-only ledger (observations,
statistics, signals, design and runtime lifecycle), so a run can be audited
and replayed after the fact.

Example
-------
>>> import timingsign
>>> assert hasattr(timingsign, "__version__")
"""

from timingsign.__version__ import __version__

__all__ = ["__version__"]
