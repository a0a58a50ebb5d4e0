"""
Tolerance model for pydistcheck
===============================

Equality predicates used uniformly by every check in the battery. A
tolerance answers one question: is ``actual`` close enough to ``expected``?

Three predicates are provided:

- absolute(eps): |actual - expected| <= eps
- relative(eps): |actual - expected| <= eps * max(|actual|, |expected|)
- combined: absolute OR relative (built with the ``|`` operator)

For all of them NaN equals NaN and identical infinities are equal, so a
reference value of ``-Infinity`` for a log-density is matched exactly.

Author: pydistcheck Development Team
License: MIT
"""

import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Union

from .exceptions import CheckFailure


Message = Optional[Union[str, Callable[[], str]]]


def _identical(expected: float, actual: float) -> bool:
    """Exact match, with NaN equal to NaN."""
    if math.isnan(expected) and math.isnan(actual):
        return True
    return expected == actual


class Tolerance(ABC):
    """Abstract equality predicate for floating point values."""

    @abstractmethod
    def _within(self, expected: float, actual: float) -> bool:
        """Compare two finite-or-infinite, non-NaN values."""
        raise NotImplementedError

    @property
    @abstractmethod
    def description(self) -> str:
        raise NotImplementedError

    def test(self, expected: float, actual: float) -> bool:
        """
        Test whether ``actual`` matches ``expected``.

        Parameters
        ----------
        expected : float
            Reference value
        actual : float
            Value computed by the distribution under test

        Returns
        -------
        bool
            True if the values are equal under this tolerance
        """
        expected = float(expected)
        actual = float(actual)
        if _identical(expected, actual):
            return True
        if math.isnan(expected) or math.isnan(actual):
            return False
        if math.isinf(expected) or math.isinf(actual):
            return False
        return self._within(expected, actual)

    __call__ = test

    def __or__(self, other: 'Tolerance') -> 'Tolerance':
        return CombinedTolerance(self, other)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.description})"


class AbsoluteTolerance(Tolerance):
    """Absolute error tolerance."""

    def __init__(self, epsilon: float):
        if not epsilon >= 0:
            raise ValueError(f"Tolerance must be non-negative, got {epsilon}")
        self.epsilon = float(epsilon)

    def _within(self, expected: float, actual: float) -> bool:
        return abs(actual - expected) <= self.epsilon

    @property
    def description(self) -> str:
        return f"abs={self.epsilon:g}"


class RelativeTolerance(Tolerance):
    """Relative error tolerance, scaled by the larger magnitude."""

    def __init__(self, epsilon: float):
        if not epsilon >= 0:
            raise ValueError(f"Tolerance must be non-negative, got {epsilon}")
        self.epsilon = float(epsilon)

    def _within(self, expected: float, actual: float) -> bool:
        scale = max(abs(expected), abs(actual))
        return abs(actual - expected) <= self.epsilon * scale

    @property
    def description(self) -> str:
        return f"rel={self.epsilon:g}"


class CombinedTolerance(Tolerance):
    """Passes if either of two tolerances passes."""

    def __init__(self, first: Tolerance, second: Tolerance):
        self.first = first
        self.second = second

    def _within(self, expected: float, actual: float) -> bool:
        return (self.first._within(expected, actual) or
                self.second._within(expected, actual))

    @property
    def description(self) -> str:
        return f"{self.first.description} or {self.second.description}"


def absolute(epsilon: float) -> Tolerance:
    """Create an absolute tolerance."""
    return AbsoluteTolerance(epsilon)


def relative(epsilon: float) -> Tolerance:
    """Create a relative tolerance."""
    return RelativeTolerance(epsilon)


def combined(absolute_epsilon: float, relative_epsilon: float) -> Tolerance:
    """Create an absolute-or-relative tolerance."""
    return AbsoluteTolerance(absolute_epsilon) | RelativeTolerance(relative_epsilon)


def _render(message: Message) -> str:
    if message is None:
        return ""
    if callable(message):
        return message()
    return message


def assert_close(expected: float, actual: float, tolerance: Tolerance,
                 message: Message = None, point: Any = None) -> None:
    """
    Assert two values are equal within a tolerance.

    Parameters
    ----------
    expected : float
        Reference value
    actual : float
        Computed value
    tolerance : Tolerance
        Equality predicate
    message : str or callable, optional
        Context for the failure; callables are only evaluated on failure
    point : Any, optional
        Input that produced ``actual``, attached to the failure

    Raises
    ------
    CheckFailure
        If the values differ under the tolerance
    """
    if tolerance.test(expected, actual):
        return
    context = _render(message)
    raise CheckFailure(
        f"{context}: expected {expected!r} but was {actual!r} ({tolerance.description})"
        if context else
        f"expected {expected!r} but was {actual!r} ({tolerance.description})",
        expected=expected, actual=actual, point=point
    )


def assert_exact(expected: Any, actual: Any, message: Message = None,
                 point: Any = None) -> None:
    """
    Assert two values are exactly equal (NaN equal to NaN).

    Raises
    ------
    CheckFailure
        If the values differ
    """
    try:
        equal = _identical(float(expected), float(actual))
    except (TypeError, ValueError):
        equal = expected == actual
    if equal:
        return
    context = _render(message)
    text = f"expected {expected!r} but was {actual!r}"
    raise CheckFailure(f"{context}: {text}" if context else text,
                       expected=expected, actual=actual, point=point)


__all__ = [
    'Tolerance', 'AbsoluteTolerance', 'RelativeTolerance', 'CombinedTolerance',
    'absolute', 'relative', 'combined', 'assert_close', 'assert_exact'
]
