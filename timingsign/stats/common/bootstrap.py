"""
timingsign.stats.common.bootstrap
=================================

Difference-of-means bootstrap with a percentile confidence interval.

This module holds the scheme-independent algorithms: resampling with
replacement, the mean-difference estimator, the bootstrap distribution,
the percentile interval and the test built from them. Ledger-aware
components in `timingsign.stats.schemes.timing` wrap `BootstrapTest`.

Randomness comes from a `numpy.random.Generator` handle. Unless one is
injected, the process-wide generator returned by `default_generator()` is
used; it is seeded once from OS entropy and never reseeded, so successive
rounds and successive tests are independent.

Examples
--------
>>> import numpy as np
>>> from timingsign.stats.common.bootstrap import BootstrapTest, mean_difference
>>> mean_difference([3.0, 5.0], [1.0, 1.0])
3.0
>>> engine = BootstrapTest(rounds=2000, alpha=0.01, rng=np.random.default_rng(7))
>>> engine.test([100.0] * 5, [0.0] * 5).rejected
True
>>> engine.test([5.0] * 5, [5.0] * 5).rejected
False
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from timingsign.core.errors import InvalidInput

BOOTSTRAP_ROUNDS = 10_000  # Number of resampling rounds per test.
SIGNIFICANCE_ALPHA = 0.01  # Two-sided significance level of the interval.

_DEFAULT_RNG: Optional[np.random.Generator] = None


def default_generator() -> np.random.Generator:
    """Return the shared generator, creating it from OS entropy on first use.

    Not thread-safe: concurrent callers must inject their own generator.
    """
    global _DEFAULT_RNG
    if _DEFAULT_RNG is None:
        _DEFAULT_RNG = np.random.default_rng()
    return _DEFAULT_RNG


def _as_group(values: Sequence[float], name: str = "values") -> np.ndarray:
    group = np.asarray(values, dtype=float)
    if group.ndim != 1:
        raise InvalidInput(f"{name} must be a one-dimensional sequence")
    if group.size == 0:
        raise InvalidInput(f"{name} must not be empty")
    return group


def resample(
    values: Sequence[float],
    size: int,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Draw `size` elements uniformly at random, with replacement, from `values`.

    >>> import numpy as np
    >>> out = resample([1.0, 2.0, 3.0], 5, np.random.default_rng(0))
    >>> len(out), set(out) <= {1.0, 2.0, 3.0}
    (5, True)
    """
    group = _as_group(values)
    if size < 1:
        raise InvalidInput(f"size must be >= 1, got {size}")
    rng = rng if rng is not None else default_generator()
    return group[rng.integers(0, group.size, size=size)]


def mean_difference(x: Sequence[float], y: Sequence[float]) -> float:
    """Arithmetic mean of `x` minus arithmetic mean of `y` (sum, then divide)."""
    if len(x) == 0 or len(y) == 0:
        raise InvalidInput("cannot average an empty sequence")
    return float(sum(x) / len(x) - sum(y) / len(y))


def bootstrap_mean_differences(
    x: Sequence[float],
    y: Sequence[float],
    rounds: int = BOOTSTRAP_ROUNDS,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Sorted bootstrap distribution of the mean difference.

    Row ``b`` of each index matrix is resampling round ``b``: ``|x|`` draws
    from `x` and, independently, ``|y|`` draws from `y`. The returned array
    holds one mean difference per round, sorted ascending.
    """
    xs = _as_group(x, "x")
    ys = _as_group(y, "y")
    if rounds < 1:
        raise ValueError(f"rounds must be >= 1, got {rounds}")
    rng = rng if rng is not None else default_generator()

    x_rounds = xs[rng.integers(0, xs.size, size=(rounds, xs.size))]
    y_rounds = ys[rng.integers(0, ys.size, size=(rounds, ys.size))]
    diffs = x_rounds.sum(axis=1) / xs.size - y_rounds.sum(axis=1) / ys.size
    diffs.sort()
    return diffs


def percentile_interval(
    distribution: Sequence[float], alpha: float = SIGNIFICANCE_ALPHA
) -> Tuple[float, float]:
    """
    Two-sided percentile interval of a sorted distribution.

    The lower index is rounded down and the upper index up, so the interval
    is never narrower than the exact percentiles. Both bounds are elements
    of `distribution`.

    >>> percentile_interval([0.0, 1.0, 2.0, 3.0, 4.0], alpha=0.5)
    (1.0, 3.0)
    >>> percentile_interval(list(range(10001)), alpha=0.01)
    (50, 9950)
    """
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")
    if len(distribution) == 0:
        raise InvalidInput("distribution must not be empty")
    half_alpha = alpha / 2
    last = len(distribution) - 1
    lower_index = math.floor(last * half_alpha)
    upper_index = math.ceil(last * (1 - half_alpha))
    return distribution[lower_index], distribution[upper_index]


@dataclass(frozen=True)
class BootstrapDecision:
    """Outcome of one bootstrap test."""

    rejected: bool
    lower: float
    upper: float
    observed_difference: float
    n_reference: int
    n_probe: int
    rounds: int
    alpha: float

    @property
    def direction(self) -> str:
        """Which group is systematically slower, or 'none'."""
        if self.lower > 0:
            return "reference_slower"
        if self.upper < 0:
            return "probe_slower"
        return "none"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "rejected": self.rejected,
            "lower": self.lower,
            "upper": self.upper,
            "observed_difference": self.observed_difference,
            "n_reference": self.n_reference,
            "n_probe": self.n_probe,
            "rounds": self.rounds,
            "alpha": self.alpha,
        }


@dataclass
class BootstrapTest:
    """
    Null hypothesis test using the bootstrap and a percentile interval.

    H0: both groups share the same mean. H0 is rejected at level `alpha`
    when the whole interval of bootstrapped mean differences lies strictly
    on one side of zero. The order of the two groups only flips the sign.

    Attributes:
        rounds: Number of resampling rounds B
        alpha: Two-sided significance level
        rng: Generator handle; defaults to the shared process-wide generator
    """

    rounds: int = BOOTSTRAP_ROUNDS
    alpha: float = SIGNIFICANCE_ALPHA
    rng: Optional[np.random.Generator] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.rounds < 1:
            raise ValueError(f"rounds must be >= 1, got {self.rounds}")
        if not 0 < self.alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {self.alpha}")

    @property
    def generator(self) -> np.random.Generator:
        return self.rng if self.rng is not None else default_generator()

    def distribution(self, x: Sequence[float], y: Sequence[float]) -> np.ndarray:
        return bootstrap_mean_differences(x, y, self.rounds, self.generator)

    def test(self, x: Sequence[float], y: Sequence[float]) -> BootstrapDecision:
        """Run the test on reference group `x` and probe group `y`."""
        boot = self.distribution(x, y)
        lower, upper = percentile_interval(boot, self.alpha)
        lower, upper = float(lower), float(upper)
        return BootstrapDecision(
            rejected=lower > 0 or upper < 0,
            lower=lower,
            upper=upper,
            observed_difference=mean_difference(x, y),
            n_reference=len(x),
            n_probe=len(y),
            rounds=self.rounds,
            alpha=self.alpha,
        )
