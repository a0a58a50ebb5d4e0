"""
Battery checks for pydistcheck
==============================

Each check takes one Scenario and the battery configuration and either
returns normally (pass), raises CheckFailure (contract violation) or raises
CheckSkipped (nothing to test).

Checks fall into three groups:
- reference value checks: compare distribution outputs with fixture values
- self-consistency checks: compare distribution outputs with each other
- contract checks: support bounds, moments, parameters, invalid arguments

Discrete distributions are compared exactly wherever the result is an
integer point. Continuous distributions use the fixture tolerance instead.

Author: pydistcheck Development Team
License: MIT
"""

import math
from typing import Any, Callable, List, Type

import numpy as np
from scipy import integrate

from .data_structures import BatteryConfig
from .exceptions import CheckFailure, CheckSkipped
from .sampling import check_continuous_sampling, check_discrete_sampling
from .scenarios import Scenario
from .tolerances import assert_close, assert_exact


# Numerical integration accuracy for continuous probability sums
INTEGRATION_ABSOLUTE_ACCURACY = 1e-12
INTEGRATION_RELATIVE_ACCURACY = 1e-10


def _native(points: np.ndarray, kind: str) -> List:
    """Convert a point array to Python scalars typed for the kind."""
    if kind == 'discrete':
        return [int(x) for x in points]
    return [float(x) for x in points]


def _point_label(kind: str) -> str:
    return 'probability mass' if kind == 'discrete' else 'density'


def _exp(value: float) -> float:
    with np.errstate(over='ignore'):
        return float(np.exp(value))


def assert_raises(error: Type[Exception], func: Callable[[], Any],
                  message: str) -> None:
    """
    Assert that calling ``func`` raises ``error``.

    Raises
    ------
    CheckFailure
        If nothing is raised, or a different exception type is raised
    """
    try:
        result = func()
    except error:
        return
    except Exception as e:
        raise CheckFailure(
            f"{message}: expected {error.__name__} but got "
            f"{type(e).__name__}: {e}"
        ) from e
    raise CheckFailure(f"{message}: expected {error.__name__}, returned {result!r}")


def _assert_inverse(scenario: Scenario, expected, actual, message) -> None:
    """Exact match for discrete points, tolerance for continuous ones."""
    if scenario.kind == 'discrete':
        assert_exact(expected, actual, message)
    else:
        assert_close(expected, actual, scenario.tolerance, message)


# ----------------------------------------------------------------------
# Reference value checks
# ----------------------------------------------------------------------

def check_probability(scenario: Scenario, config: BatteryConfig) -> None:
    """Point function matches the reference mass or density values."""
    dist = scenario.distribution
    label = _point_label(scenario.kind)
    for x, expected in zip(_native(scenario.points, scenario.kind), scenario.values):
        assert_close(expected, dist.point_value(x), scenario.tolerance,
                     lambda: f"Incorrect {label} value returned for {x}", point=x)


def check_log_probability(scenario: Scenario, config: BatteryConfig) -> None:
    """Log point function matches the reference log values."""
    dist = scenario.distribution
    label = _point_label(scenario.kind)
    for x, expected in zip(_native(scenario.points, scenario.kind), scenario.values):
        assert_close(expected, dist.log_point_value(x), scenario.tolerance,
                     lambda: f"Incorrect log {label} value returned for {x}", point=x)


def check_cumulative_probability(scenario: Scenario, config: BatteryConfig) -> None:
    """
    CDF matches the reference values, and so does every pairwise range.

    For every ordered pair of points (x0, x1) with x0 <= x1 the range
    probability must equal the difference of the reference CDF values.
    Pairs with x0 > x1 must be rejected with the family's error type.
    """
    dist = scenario.distribution
    points = _native(scenario.points, scenario.kind)
    values = scenario.values
    tol = scenario.tolerance
    error = scenario.family.expected_error

    for x, expected in zip(points, values):
        assert_close(expected, dist.cumulative_probability(x), tol,
                     lambda: f"Incorrect cumulative probability value returned for {x}",
                     point=x)

    for i, x0 in enumerate(points):
        for j, x1 in enumerate(points):
            if x0 <= x1:
                assert_close(values[j] - values[i], dist.range_probability(x0, x1), tol,
                             lambda: f"Incorrect range probability returned for "
                                     f"{x0} < X <= {x1}",
                             point=(x0, x1))
            else:
                assert_raises(error, lambda: dist.range_probability(x0, x1),
                              f"range_probability({x0}, {x1}) with lower > upper")


def check_survival_probability(scenario: Scenario, config: BatteryConfig) -> None:
    """Survival function matches the reference values."""
    dist = scenario.distribution
    for x, expected in zip(_native(scenario.points, scenario.kind), scenario.values):
        assert_close(expected, dist.survival_probability(x), scenario.tolerance,
                     lambda: f"Incorrect survival probability value returned for {x}",
                     point=x)


def check_cumulative_probability_high_precision(scenario: Scenario,
                                                config: BatteryConfig) -> None:
    """CDF matches tiny reference values in the lower tail."""
    dist = scenario.distribution
    for x, expected in zip(_native(scenario.points, scenario.kind), scenario.values):
        assert_close(expected, dist.cumulative_probability(x), scenario.tolerance,
                     lambda: f"cumulative probability is not precise for value {x}",
                     point=x)


def check_survival_probability_high_precision(scenario: Scenario,
                                              config: BatteryConfig) -> None:
    """Survival function matches tiny reference values in the upper tail."""
    dist = scenario.distribution
    for x, expected in zip(_native(scenario.points, scenario.kind), scenario.values):
        assert_close(expected, dist.survival_probability(x), scenario.tolerance,
                     lambda: f"survival probability is not precise for value {x}",
                     point=x)


def check_inverse_cumulative_probability(scenario: Scenario,
                                         config: BatteryConfig) -> None:
    """Inverse CDF matches the reference values inside the support."""
    dist = scenario.distribution
    lower = dist.support_lower_bound
    upper = dist.support_upper_bound
    for p, x in zip([float(p) for p in scenario.points],
                    _native(scenario.values, scenario.kind)):
        if x < lower or x > upper:
            continue
        _assert_inverse(scenario, x, dist.inverse_cumulative_probability(p),
                        lambda: f"Incorrect inverse cumulative probability value "
                                f"returned for {p}")


# ----------------------------------------------------------------------
# Self-consistency checks
# ----------------------------------------------------------------------

def check_cumulative_probability_inverse_mapping(scenario: Scenario,
                                                 config: BatteryConfig) -> None:
    """
    inverse_cumulative_probability(cumulative_probability(x)) == x.

    Points outside the support are ignored, as are points with CDF 1 since
    the inverse of 1 is the upper bound rather than x.
    """
    dist = scenario.distribution
    lower = dist.support_lower_bound
    upper = dist.support_upper_bound
    for x in _native(scenario.points, scenario.kind):
        if x < lower or x > upper:
            continue
        p = dist.cumulative_probability(x)
        if p == 1.0:
            continue
        _assert_inverse(scenario, x, dist.inverse_cumulative_probability(p),
                        lambda: f"Incorrect inverse cumulative probability value "
                                f"returned for {p}")


def check_survival_and_cumulative_probability_complement(scenario: Scenario,
                                                         config: BatteryConfig) -> None:
    """survival_probability(x) + cumulative_probability(x) == 1."""
    dist = scenario.distribution
    for x in _native(scenario.points, scenario.kind):
        total = dist.survival_probability(x) + dist.cumulative_probability(x)
        assert_close(1.0, total, scenario.tolerance,
                     lambda: f"survival + cumulative probability were not close to "
                             f"1.0 for {x}",
                     point=x)


def check_consistency(scenario: Scenario, config: BatteryConfig) -> None:
    """
    Range probability agrees with the CDF.

    An empty range has exactly zero probability, and the range between each
    point and the one before it equals the CDF difference.
    """
    dist = scenario.distribution
    points = _native(scenario.points, scenario.kind)
    for i in range(1, len(points)):
        x = points[i]
        assert_exact(0.0, dist.range_probability(x, x),
                     f"range_probability({x}, {x}) of an empty range", point=x)
        lower = min(points[i], points[i - 1])
        upper = max(points[i], points[i - 1])
        cdf_diff = (dist.cumulative_probability(upper) -
                    dist.cumulative_probability(lower))
        assert_close(cdf_diff, dist.range_probability(lower, upper), scenario.tolerance,
                     lambda: f"Inconsistent range probability for "
                             f"{lower} < X <= {upper}",
                     point=(lower, upper))


def _check_outside_support_discrete(scenario: Scenario) -> None:
    dist = scenario.distribution
    tol = scenario.tolerance
    lo = dist.support_lower_bound
    hi = dist.support_upper_bound

    assert_close(dist.probability(lo), dist.cumulative_probability(lo), tol,
                 lambda: f"mass at lower bound {lo} != cumulative probability", point=lo)
    assert_exact(lo, dist.inverse_cumulative_probability(0.0),
                 "inverse cumulative probability of 0 != lower bound", point=0.0)
    if lo != -math.inf:
        below = lo - 1
        assert_exact(0.0, dist.probability(below), f"mass below support at {below}")
        assert_exact(0.0, dist.cumulative_probability(below),
                     f"cumulative probability below support at {below}")
        assert_exact(1.0, dist.survival_probability(below),
                     f"survival probability below support at {below}")
        assert_exact(-math.inf, dist.log_probability(below),
                     f"log mass below support at {below}")

    if not lo <= hi:
        raise CheckFailure(f"lower bound {lo} > upper bound {hi}")
    assert_exact(1.0, dist.cumulative_probability(hi),
                 f"cumulative probability at upper bound {hi}")
    assert_exact(0.0, dist.survival_probability(hi),
                 f"survival probability at upper bound {hi}")
    assert_close(dist.probability(hi), dist.survival_probability(hi - 1), tol,
                 lambda: f"mass at upper bound {hi} != survival probability "
                         f"of {hi - 1}", point=hi)
    assert_exact(hi, dist.inverse_cumulative_probability(1.0),
                 "inverse cumulative probability of 1 != upper bound", point=1.0)
    if hi != math.inf:
        above = hi + 1
        assert_exact(0.0, dist.probability(above), f"mass above support at {above}")
        assert_exact(1.0, dist.cumulative_probability(above),
                     f"cumulative probability above support at {above}")
        assert_exact(0.0, dist.survival_probability(above),
                     f"survival probability above support at {above}")
        assert_exact(-math.inf, dist.log_probability(above),
                     f"log mass above support at {above}")

    for x in (lo, hi):
        assert_close(dist.probability(x), _exp(dist.log_probability(x)), tol,
                     lambda: f"mass != exp(log mass) at bound {x}", point=x)


def _check_outside_support_continuous(scenario: Scenario) -> None:
    dist = scenario.distribution
    tol = scenario.tolerance
    lo = dist.support_lower_bound
    hi = dist.support_upper_bound

    assert_exact(0.0, dist.cumulative_probability(lo),
                 f"cumulative probability at lower bound {lo}")
    assert_exact(1.0, dist.survival_probability(lo),
                 f"survival probability at lower bound {lo}")
    assert_exact(lo, dist.inverse_cumulative_probability(0.0),
                 "inverse cumulative probability of 0 != lower bound", point=0.0)
    if lo != -math.inf:
        below = float(np.nextafter(lo, -np.inf))
        assert_exact(0.0, dist.density(below), f"density below support at {below}")
        assert_exact(0.0, dist.cumulative_probability(below),
                     f"cumulative probability below support at {below}")
        assert_exact(1.0, dist.survival_probability(below),
                     f"survival probability below support at {below}")
        assert_exact(-math.inf, dist.log_density(below),
                     f"log density below support at {below}")

    if not lo <= hi:
        raise CheckFailure(f"lower bound {lo} > upper bound {hi}")
    assert_exact(1.0, dist.cumulative_probability(hi),
                 f"cumulative probability at upper bound {hi}")
    assert_exact(0.0, dist.survival_probability(hi),
                 f"survival probability at upper bound {hi}")
    assert_exact(hi, dist.inverse_cumulative_probability(1.0),
                 "inverse cumulative probability of 1 != upper bound", point=1.0)
    if hi != math.inf:
        above = float(np.nextafter(hi, np.inf))
        assert_exact(0.0, dist.density(above), f"density above support at {above}")
        assert_exact(1.0, dist.cumulative_probability(above),
                     f"cumulative probability above support at {above}")
        assert_exact(0.0, dist.survival_probability(above),
                     f"survival probability above support at {above}")
        assert_exact(-math.inf, dist.log_density(above),
                     f"log density above support at {above}")

    for x in (lo, hi):
        assert_close(dist.density(x), _exp(dist.log_density(x)), tol,
                     lambda: f"density != exp(log density) at bound {x}", point=x)


def check_outside_support(scenario: Scenario, config: BatteryConfig) -> None:
    """Boundary values at and beyond the support bounds."""
    if scenario.kind == 'discrete':
        _check_outside_support_discrete(scenario)
    else:
        _check_outside_support_continuous(scenario)


def check_invalid_probabilities(scenario: Scenario, config: BatteryConfig) -> None:
    """Reversed ranges and probabilities outside [0, 1] are rejected."""
    dist = scenario.distribution
    error = scenario.family.expected_error
    lo = dist.support_lower_bound
    hi = dist.support_upper_bound
    if lo < hi:
        assert_raises(error, lambda: dist.range_probability(hi, lo),
                      f"range_probability({hi}, {lo}) with lower > upper")
    assert_raises(error, lambda: dist.inverse_cumulative_probability(-1),
                  "inverse_cumulative_probability(-1)")
    assert_raises(error, lambda: dist.inverse_cumulative_probability(2),
                  "inverse_cumulative_probability(2)")


def check_sampling(scenario: Scenario, config: BatteryConfig) -> None:
    """Sampler output is consistent with the distribution."""
    if scenario.kind == 'discrete':
        check_discrete_sampling(scenario.distribution, scenario.points,
                                scenario.values, config)
    else:
        check_continuous_sampling(scenario.distribution, config)


def _check_probability_sums_discrete(scenario: Scenario, config: BatteryConfig) -> None:
    dist = scenario.distribution
    margin = config.probability_margin
    points = sorted(
        int(x) for x, p in zip(scenario.points, scenario.values)
        if not (math.isnan(p) or p < margin or p > 1 - margin)
    )
    for x0, x1 in zip(points, points[1:]):
        if x1 - x0 > config.max_sum_gap:
            continue
        total = math.fsum(dist.probability(k) for k in range(x0 + 1, x1 + 1))
        assert_close(dist.range_probability(x0, x1), total, scenario.tolerance,
                     lambda: f"Invalid sum of probability mass for "
                             f"{x0} < X <= {x1}",
                     point=(x0, x1))


def _check_probability_sums_continuous(scenario: Scenario, config: BatteryConfig) -> None:
    dist = scenario.distribution
    margin = config.probability_margin
    points = sorted(
        float(x) for x, p in zip(scenario.points, scenario.values)
        if not (math.isnan(p) or p < margin or p > 1 - margin)
    )
    for x0, x1 in zip(points, points[1:]):
        if x0 == x1:
            continue
        integral, _ = integrate.quad(dist.density, x0, x1,
                                     epsabs=INTEGRATION_ABSOLUTE_ACCURACY,
                                     epsrel=INTEGRATION_RELATIVE_ACCURACY,
                                     limit=200)
        assert_close(dist.range_probability(x0, x1), integral, scenario.tolerance,
                     lambda: f"Invalid integral of density for {x0} < X <= {x1}",
                     point=(x0, x1))


def check_probability_sums(scenario: Scenario, config: BatteryConfig) -> None:
    """
    Summed mass (or integrated density) between CDF points equals the
    range probability.

    Points with reference CDF values within ``probability_margin`` of 0 or
    1 are ignored, since the sum cannot be accurate there.
    """
    if scenario.kind == 'discrete':
        _check_probability_sums_discrete(scenario, config)
    else:
        _check_probability_sums_continuous(scenario, config)


# ----------------------------------------------------------------------
# Contract checks
# ----------------------------------------------------------------------

def check_support(scenario: Scenario, config: BatteryConfig) -> None:
    """Support bounds and connectivity match the fixture."""
    dist = scenario.distribution
    fixture = scenario.fixture
    assert_exact(fixture.lower, dist.support_lower_bound, "lower bound")
    assert_exact(fixture.upper, dist.support_upper_bound, "upper bound")
    if bool(fixture.connected) != bool(dist.is_support_connected):
        raise CheckFailure(
            f"support connected: expected {fixture.connected} "
            f"but was {dist.is_support_connected}",
            expected=fixture.connected, actual=dist.is_support_connected
        )


def check_moments(scenario: Scenario, config: BatteryConfig) -> None:
    """Mean and variance match the fixture. NaN reference values are not tested."""
    dist = scenario.distribution
    fixture = scenario.fixture
    if math.isnan(fixture.mean) and math.isnan(fixture.variance):
        raise CheckSkipped(f"{fixture.name} has no reference moments")
    if not math.isnan(fixture.mean):
        assert_close(fixture.mean, dist.mean, scenario.tolerance, "mean")
    if not math.isnan(fixture.variance):
        assert_close(fixture.variance, dist.variance, scenario.tolerance, "variance")


def check_parameter_accessors(scenario: Scenario, config: BatteryConfig) -> None:
    """Each accessor returns the parameter the distribution was built with."""
    dist = scenario.distribution
    for (name, accessor), expected in zip(scenario.family.parameter_accessors,
                                          scenario.fixture.parameters):
        assert_exact(expected, accessor(dist), f"parameter '{name}'")


def check_invalid_parameters(scenario: Scenario, config: BatteryConfig) -> None:
    """The family rejects an invalid parameter set."""
    family = scenario.family
    assert_raises(family.expected_error,
                  lambda: family.make_distribution(scenario.parameters),
                  f"{family.name}{tuple(scenario.parameters)}")


__all__ = [
    'check_probability', 'check_log_probability',
    'check_cumulative_probability', 'check_survival_probability',
    'check_cumulative_probability_high_precision',
    'check_survival_probability_high_precision',
    'check_inverse_cumulative_probability',
    'check_cumulative_probability_inverse_mapping',
    'check_survival_and_cumulative_probability_complement',
    'check_consistency', 'check_outside_support', 'check_invalid_probabilities',
    'check_sampling', 'check_probability_sums', 'check_support', 'check_moments',
    'check_parameter_accessors', 'check_invalid_parameters', 'assert_raises',
]
