"""
Statistical methods for sequential timing tests.

1. **Common** (timingsign.stats.common):
   Scheme-independent algorithms: resampling, the mean-difference
   estimator, the bootstrap distribution and the percentile interval.

2. **Schemes** (timingsign.stats.schemes):
   Ledger-aware components applying the common algorithms to a concrete
   experimental setting (paired reference/probe timings).

Example:
--------
>>> from timingsign.stats.common.bootstrap import percentile_interval
>>> percentile_interval([1.0, 2.0, 3.0], alpha=0.5)
(1.0, 3.0)

>>> from timingsign.stats.schemes.timing.bootstrap import BootstrapIntervalStatistic
>>> statistic = BootstrapIntervalStatistic()
"""
