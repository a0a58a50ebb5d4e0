"""
Battery for the geometric distribution (scipy.stats.geom).

The support is unbounded above, which exercises the infinite upper bound
handling of the outside-support checks.
"""

import math
import sys
from pathlib import Path

import pytest
from scipy import stats

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from pydistcheck import DistributionFamily, ScipyDiscreteDistribution, iter_cases

RESOURCES = Path(__file__).parent.parent / 'resources'

GEOMETRIC = DistributionFamily(
    name='geometric',
    kind='discrete',
    factory=lambda p: ScipyDiscreteDistribution(stats.geom(p)),
    parameter_accessors=[('probability_of_success', lambda d: d.frozen.args[0])],
    invalid_parameters=[(0.0,), (-0.5,), (1.5,)],
    fixture_directory=RESOURCES,
)

CASES = list(iter_cases(GEOMETRIC))


@pytest.mark.parametrize('case', CASES, ids=[c.id for c in CASES])
def test_battery(case, run_case):
    """Geometric passes every check with data."""
    run_case(case)


def test_unbounded_support():
    """Support is unbounded above."""
    dist = GEOMETRIC.make_distribution((0.5,))
    assert dist.support_lower_bound == 1
    assert dist.support_upper_bound == math.inf
    assert dist.inverse_cumulative_probability(1.0) == math.inf


def test_high_precision_survival():
    """Far upper tail survival is precise."""
    dist = GEOMETRIC.make_distribution((0.5,))
    assert abs(dist.survival_probability(60) - 2.0 ** -60) <= 1e-30
