"""
Sampling validation for pydistcheck
===================================

Goodness-of-fit checks for distribution samplers.

Discrete samplers are tested against the reference mass of the fixture
points: draws are bucketed by exact match and the bucket counts are
compared with the expected counts using a chi-square test. Continuous
samplers are tested against the quartiles of the distribution, where each
of the four bins should receive a quarter of the draws.

The random source is seeded from the battery configuration, so a given
configuration produces the same draws on every run. The checks can still
fail for a correct sampler with probability equal to the significance
level.

Author: pydistcheck Development Team
License: MIT
"""

from typing import List, Sequence, Tuple

import numpy as np
from scipy import stats

from .data_structures import BatteryConfig
from .distributions import ContinuousDistribution, DiscreteDistribution
from .exceptions import CheckFailure, CheckSkipped
from .tolerances import assert_exact


def eliminate_zero_mass_points(points: Sequence[int],
                               values: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Drop points with zero reference mass.

    Zero-mass points can never be observed and would make the chi-square
    statistic undefined.

    Parameters
    ----------
    points : sequence of int
        Mass points
    values : sequence of float
        Reference mass at each point

    Returns
    -------
    points, values : np.ndarray
        New arrays holding only the points with non-zero mass
    """
    points = np.array(points, copy=True)
    values = np.array(values, dtype=np.float64, copy=True)
    keep = values != 0
    return points[keep], values[keep]


def chi_square_test(expected: Sequence[float],
                    observed: Sequence[int]) -> Tuple[float, float]:
    """
    Pearson chi-square test of observed counts against expected counts.

    The expected counts are rescaled to the observed total before testing.

    Parameters
    ----------
    expected : sequence of float
        Expected counts (or proportional weights)
    observed : sequence of int
        Observed counts

    Returns
    -------
    statistic : float
        Chi-square statistic
    p_value : float
        Probability of a statistic at least this large under the null
    """
    expected = np.asarray(expected, dtype=np.float64)
    observed = np.asarray(observed, dtype=np.float64)
    if len(expected) != len(observed):
        raise ValueError(f"Length mismatch: {len(expected)} expected, "
                         f"{len(observed)} observed")
    if len(expected) < 2:
        raise ValueError("At least two categories are required")

    total = observed.sum()
    if total == 0:
        # Nothing landed on a tested point
        return np.inf, 0.0
    expected = expected * (total / expected.sum())
    statistic, p_value = stats.chisquare(observed, f_exp=expected)
    return float(statistic), float(p_value)


def assert_chi_square_accept(labels: Sequence, expected: Sequence[float],
                             observed: Sequence[int], alpha: float) -> None:
    """
    Assert the observed counts are consistent with the expected counts.

    Parameters
    ----------
    labels : sequence
        Label of each category, used in the failure message
    expected : sequence of float
        Expected counts
    observed : sequence of int
        Observed counts
    alpha : float
        Significance level; the null is rejected when p < alpha

    Raises
    ------
    CheckFailure
        If the chi-square test rejects the null hypothesis
    """
    statistic, p_value = chi_square_test(expected, observed)
    if p_value >= alpha:
        return

    lines = [
        "Chi-square test failed",
        f"{'Value':>12} {'Expected':>12} {'Observed':>10}",
    ]
    for label, e, o in zip(labels, expected, observed):
        lines.append(f"{str(label):>12} {e:>12.4f} {int(o):>10d}")
    lines.append(f"p-value = {p_value:.6g}, chi-square statistic = {statistic:.6g}")
    lines.append(f"Note: This test can fail randomly with probability {alpha:g}")
    raise CheckFailure("\n".join(lines), expected=list(expected),
                       actual=list(observed))


def check_discrete_sampling(distribution: DiscreteDistribution,
                            points: Sequence[int],
                            values: Sequence[float],
                            config: BatteryConfig) -> None:
    """
    Test a discrete sampler against reference mass values.

    Parameters
    ----------
    distribution : DiscreteDistribution
        Distribution under test
    points, values : sequence
        Mass points and their reference mass. Not modified.
    config : BatteryConfig
        Seed, sample size and significance level

    Raises
    ------
    CheckSkipped
        If the points with non-zero mass carry too little total mass
    CheckFailure
        If the sampler disagrees with the reference mass
    """
    points, values = eliminate_zero_mass_points(points, values)
    total = float(values.sum())
    if not total > config.min_sampled_mass:
        raise CheckSkipped(
            f"Not enough of the distribution is tested during sampling: {total}"
        )

    rng = np.random.default_rng(config.seed)
    sampler = distribution.create_sampler(rng)

    if len(points) == 1:
        point = points.item(0)
        for _ in range(config.degenerate_draws):
            assert_exact(point, sampler.sample(), "Degenerate sample", point=point)
        return

    expected = values * config.sample_size
    sample = sampler.samples(config.sample_size)

    # First occurrence wins for duplicated points
    index = {}
    for i, p in enumerate(points.tolist()):
        index.setdefault(p, i)
    observed = np.zeros(len(points), dtype=np.int64)
    for x in np.asarray(sample).tolist():
        i = index.get(x)
        if i is not None:
            observed[i] += 1

    assert_chi_square_accept(points.tolist(), expected, observed,
                             config.significance_level)


def quartiles(distribution: ContinuousDistribution) -> List[float]:
    """Lower quartile, median and upper quartile of a distribution."""
    return [distribution.inverse_cumulative_probability(p)
            for p in (0.25, 0.5, 0.75)]


def check_continuous_sampling(distribution: ContinuousDistribution,
                              config: BatteryConfig) -> None:
    """
    Test a continuous sampler against the distribution quartiles.

    Parameters
    ----------
    distribution : ContinuousDistribution
        Distribution under test
    config : BatteryConfig
        Seed, sample size and significance level

    Raises
    ------
    CheckFailure
        If the draws are not spread evenly over the four quartile bins
    """
    q = quartiles(distribution)
    expected = np.full(4, 0.25 * config.sample_size)

    rng = np.random.default_rng(config.seed)
    sample = np.asarray(distribution.create_sampler(rng).samples(config.sample_size),
                        dtype=np.float64)

    # Bin i holds q[i-1] < x <= q[i]
    bins = np.searchsorted(q, sample, side='left')
    observed = np.bincount(bins, minlength=4)

    assert_chi_square_accept(['Q1', 'Q2', 'Q3', 'Q4'], expected, observed,
                             config.significance_level)


__all__ = [
    'eliminate_zero_mass_points', 'chi_square_test', 'assert_chi_square_accept',
    'check_discrete_sampling', 'check_continuous_sampling', 'quartiles'
]
