"""
SciPy adapters for pydistcheck
==============================

Wraps frozen ``scipy.stats`` distributions in the distribution interface
the battery tests against. The adapters normalise the places where scipy
conventions differ from the interface:

- invalid parameters raise DistributionError instead of producing NaN
- range probabilities with lower > upper raise instead of returning 0
- inverse CDF of 0 returns the lower support bound (scipy returns lower - 1
  for discrete distributions) and probabilities outside [0, 1] raise
- finite discrete support bounds and inverse values are Python ints

Author: pydistcheck Development Team
License: MIT
"""

import math
from typing import Any, Tuple, Union

import numpy as np
from scipy.stats._distn_infrastructure import rv_continuous_frozen, rv_discrete_frozen

from .distributions import ContinuousDistribution, DiscreteDistribution, Sampler
from .exceptions import DistributionError


Number = Union[int, float]


def _check_probability(p: float) -> float:
    if not 0.0 <= p <= 1.0:
        raise DistributionError(f"Probability must be in [0, 1], got {p}")
    return float(p)


def _check_range(x0: Number, x1: Number) -> None:
    if x0 > x1:
        raise DistributionError(f"Lower bound {x0} must not exceed upper bound {x1}")


def _support(frozen: Any) -> Tuple[float, float]:
    """Support of a frozen distribution; NaN bounds mean invalid parameters."""
    lower, upper = (float(b) for b in frozen.support())
    if math.isnan(lower) or math.isnan(upper):
        raise DistributionError(
            f"Invalid parameters for {frozen.dist.name}: "
            f"args={frozen.args}, kwds={frozen.kwds}"
        )
    return lower, upper


def _as_int(x: float) -> Number:
    """Integer value, keeping infinities as floats."""
    return x if math.isinf(x) else int(x)


class ScipySampler(Sampler):
    """Draws from a frozen scipy distribution with a numpy Generator."""

    def __init__(self, frozen: Any, rng: np.random.Generator, discrete: bool):
        self.frozen = frozen
        self.rng = rng
        self.discrete = discrete

    def sample(self) -> Number:
        value = self.frozen.rvs(random_state=self.rng)
        return int(value) if self.discrete else float(value)

    def samples(self, n: int) -> np.ndarray:
        return np.asarray(self.frozen.rvs(size=n, random_state=self.rng))


class ScipyDiscreteDistribution(DiscreteDistribution):
    """
    Discrete distribution backed by a frozen ``scipy.stats`` distribution.

    Parameters
    ----------
    frozen : rv_discrete_frozen
        e.g. ``scipy.stats.binom(10, 0.5)``
    connected : bool
        Whether every integer between the support bounds has non-zero mass

    Raises
    ------
    DistributionError
        If the parameters are invalid
    """

    def __init__(self, frozen: rv_discrete_frozen, connected: bool = True):
        if not isinstance(frozen, rv_discrete_frozen):
            raise TypeError(f"Expected a frozen discrete distribution, got {type(frozen)}")
        lower, upper = _support(frozen)
        self.frozen = frozen
        self._lower = _as_int(lower)
        self._upper = _as_int(upper)
        self._connected = connected

    def probability(self, x: int) -> float:
        return float(self.frozen.pmf(x))

    def log_probability(self, x: int) -> float:
        with np.errstate(divide='ignore'):
            return float(self.frozen.logpmf(x))

    def cumulative_probability(self, x: int) -> float:
        return float(self.frozen.cdf(x))

    def survival_probability(self, x: int) -> float:
        return float(self.frozen.sf(x))

    def range_probability(self, x0: int, x1: int) -> float:
        _check_range(x0, x1)
        if x0 == x1:
            return 0.0
        if self.cumulative_probability(x0) < 0.5:
            return self.cumulative_probability(x1) - self.cumulative_probability(x0)
        # Upper tail: the survival difference avoids cancellation near 1
        return self.survival_probability(x0) - self.survival_probability(x1)

    def inverse_cumulative_probability(self, p: float) -> Number:
        p = _check_probability(p)
        if p == 0.0:
            return self._lower
        if p == 1.0:
            return self._upper
        x = float(self.frozen.ppf(p))
        if math.isinf(x):
            return x
        k = int(x)
        # Smallest k with cdf(k) >= p, using this adapter's own cdf
        while k > self._lower and self.cumulative_probability(k - 1) >= p:
            k -= 1
        while k < self._upper and self.cumulative_probability(k) < p:
            k += 1
        return k

    @property
    def support_lower_bound(self) -> Number:
        return self._lower

    @property
    def support_upper_bound(self) -> Number:
        return self._upper

    @property
    def is_support_connected(self) -> bool:
        return self._connected

    @property
    def mean(self) -> float:
        return float(self.frozen.mean())

    @property
    def variance(self) -> float:
        return float(self.frozen.var())

    def create_sampler(self, rng: np.random.Generator) -> Sampler:
        return ScipySampler(self.frozen, rng, discrete=True)

    def __repr__(self) -> str:
        return f"ScipyDiscreteDistribution({self.frozen.dist.name}{self.frozen.args})"


class ScipyContinuousDistribution(ContinuousDistribution):
    """
    Continuous distribution backed by a frozen ``scipy.stats`` distribution.

    Parameters
    ----------
    frozen : rv_continuous_frozen
        e.g. ``scipy.stats.expon(scale=2.0)``

    Raises
    ------
    DistributionError
        If the parameters are invalid
    """

    def __init__(self, frozen: rv_continuous_frozen):
        if not isinstance(frozen, rv_continuous_frozen):
            raise TypeError(f"Expected a frozen continuous distribution, got {type(frozen)}")
        self._lower, self._upper = _support(frozen)
        self.frozen = frozen

    def density(self, x: float) -> float:
        return float(self.frozen.pdf(x))

    def log_density(self, x: float) -> float:
        with np.errstate(divide='ignore'):
            return float(self.frozen.logpdf(x))

    def cumulative_probability(self, x: float) -> float:
        return float(self.frozen.cdf(x))

    def survival_probability(self, x: float) -> float:
        return float(self.frozen.sf(x))

    def range_probability(self, x0: float, x1: float) -> float:
        _check_range(x0, x1)
        if x0 == x1:
            return 0.0
        if self.cumulative_probability(x0) < 0.5:
            return self.cumulative_probability(x1) - self.cumulative_probability(x0)
        return self.survival_probability(x0) - self.survival_probability(x1)

    def inverse_cumulative_probability(self, p: float) -> float:
        p = _check_probability(p)
        if p == 0.0:
            return self._lower
        if p == 1.0:
            return self._upper
        return float(self.frozen.ppf(p))

    @property
    def support_lower_bound(self) -> float:
        return self._lower

    @property
    def support_upper_bound(self) -> float:
        return self._upper

    @property
    def is_support_connected(self) -> bool:
        return True

    @property
    def mean(self) -> float:
        return float(self.frozen.mean())

    @property
    def variance(self) -> float:
        return float(self.frozen.var())

    def create_sampler(self, rng: np.random.Generator) -> Sampler:
        return ScipySampler(self.frozen, rng, discrete=False)

    def __repr__(self) -> str:
        return (f"ScipyContinuousDistribution({self.frozen.dist.name}"
                f"{self.frozen.args}, {self.frozen.kwds})")


__all__ = ['ScipySampler', 'ScipyDiscreteDistribution', 'ScipyContinuousDistribution']
