"""
Paired timing scheme for blind timing-based injection checks.

**Module Organization:**

- `core`: payloads, measurement validation and the observation component
- `bootstrap`: bootstrap interval statistic and interval signaler
- `experiments`: `TimingBootstrapTemplate` tying the components together

Component-Level Usage
---------------------
>>> from timingsign.stats.schemes.timing.core import TimingObservation
>>> from timingsign.stats.schemes.timing.bootstrap import IntervalSignaler
>>> isinstance(TimingObservation(), TimingObservation)
True
"""
