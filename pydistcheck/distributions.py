"""
Distribution capability interface.

Defines the abstract contract the battery requires from any distribution
under test. Discrete and continuous distributions share the cumulative,
survival, range, inverse, support and moment operations; they differ in
the point function (mass vs density) and the type of their points.

Implementations are external collaborators. The battery only calls the
methods declared here.

Author: pydistcheck Development Team
License: MIT
"""

import math
from abc import ABC, abstractmethod
from typing import Union

import numpy as np


# Domain sentinels. Python integers are unbounded, so a discrete support
# that extends without limit reports an infinite bound.
DOMAIN_MIN = -math.inf
DOMAIN_MAX = math.inf

Number = Union[int, float]


class Sampler(ABC):
    """Draws values from a distribution using an injected random source."""

    @abstractmethod
    def sample(self) -> Number:
        """Draw a single value."""
        raise NotImplementedError

    def samples(self, n: int) -> np.ndarray:
        """
        Draw ``n`` values.

        Parameters
        ----------
        n : int
            Number of values to draw

        Returns
        -------
        np.ndarray
            Array of shape (n,)
        """
        return np.array([self.sample() for _ in range(n)])


class DistributionBase(ABC):
    """
    Operations common to discrete and continuous distributions.

    Every distribution must implement these. No defaults - explicit
    implementation required.
    """

    @abstractmethod
    def cumulative_probability(self, x: Number) -> float:
        """P(X <= x)."""
        raise NotImplementedError

    @abstractmethod
    def survival_probability(self, x: Number) -> float:
        """P(X > x), computed directly rather than as 1 - CDF."""
        raise NotImplementedError

    @abstractmethod
    def range_probability(self, x0: Number, x1: Number) -> float:
        """
        P(x0 < X <= x1).

        Raises
        ------
        ValueError
            If x0 > x1
        """
        raise NotImplementedError

    @abstractmethod
    def inverse_cumulative_probability(self, p: float) -> Number:
        """
        Smallest x such that P(X <= x) >= p.

        Raises
        ------
        ValueError
            If p is outside [0, 1]
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def support_lower_bound(self) -> Number:
        raise NotImplementedError

    @property
    @abstractmethod
    def support_upper_bound(self) -> Number:
        raise NotImplementedError

    @property
    @abstractmethod
    def is_support_connected(self) -> bool:
        raise NotImplementedError

    @property
    @abstractmethod
    def mean(self) -> float:
        raise NotImplementedError

    @property
    @abstractmethod
    def variance(self) -> float:
        raise NotImplementedError

    @abstractmethod
    def create_sampler(self, rng: np.random.Generator) -> Sampler:
        """
        Create a sampler backed by ``rng``.

        Parameters
        ----------
        rng : np.random.Generator
            Source of uniform randomness owned by the caller
        """
        raise NotImplementedError


class DiscreteDistribution(DistributionBase):
    """Distribution over the integers."""

    kind = 'discrete'

    @abstractmethod
    def probability(self, x: int) -> float:
        """Probability mass P(X = x)."""
        raise NotImplementedError

    @abstractmethod
    def log_probability(self, x: int) -> float:
        """Natural logarithm of the probability mass."""
        raise NotImplementedError

    # Point function aliases used by checks shared between kinds
    def point_value(self, x: int) -> float:
        return self.probability(x)

    def log_point_value(self, x: int) -> float:
        return self.log_probability(x)


class ContinuousDistribution(DistributionBase):
    """Distribution over the real line."""

    kind = 'continuous'

    @abstractmethod
    def density(self, x: float) -> float:
        """Probability density at x."""
        raise NotImplementedError

    @abstractmethod
    def log_density(self, x: float) -> float:
        """Natural logarithm of the probability density."""
        raise NotImplementedError

    def point_value(self, x: float) -> float:
        return self.density(x)

    def log_point_value(self, x: float) -> float:
        return self.log_density(x)


__all__ = [
    'DOMAIN_MIN', 'DOMAIN_MAX', 'Sampler', 'DistributionBase',
    'DiscreteDistribution', 'ContinuousDistribution'
]
