"""
Scenario generation for pydistcheck
===================================

Projects a family's fixtures into per-check argument streams. Each stream
is a lazy generator of Scenario objects, one per fixture that has data for
the check.

Rules applied to every stream:
- a fixture is skipped when its disable flag for the check is set
- a fixture is skipped when the point array the check needs is empty
- a stream that yields nothing raises CheckSkipped when exhausted

One distribution instance is built per fixture and shared by all the
scenarios generated from that fixture. A fixture the family factory rejects
still yields its scenario, carrying the error, so the other fixtures of
the stream are unaffected.

Author: pydistcheck Development Team
License: MIT
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np

from .data_structures import Fixture
from .distributions import DistributionBase
from .exceptions import CheckSkipped
from .families import DistributionFamily
from .tolerances import Tolerance, absolute, relative


# Fixed tolerance for probability sums, independent of the fixture tolerance
PROBABILITY_SUM_TOLERANCE = 1e-9


@dataclass
class Scenario:
    """
    Arguments for one check invocation.

    Attributes
    ----------
    category : str
        Name of the check the scenario feeds
    family : DistributionFamily
        Family under test
    fixture : Fixture or None
        Source fixture (None for family-wide scenarios)
    distribution : DistributionBase or None
        Instance built from the fixture parameters
    points, values : np.ndarray or None
        Test inputs and expected outputs (read-only)
    tolerance : Tolerance or None
        Equality predicate; None where the check is exact
    parameters : tuple or None
        Raw parameters, used by the invalid-parameter check
    error : Exception or None
        Raised while building the distribution; the scenario cannot run
    """
    category: str
    family: DistributionFamily
    fixture: Optional[Fixture] = None
    distribution: Optional[DistributionBase] = None
    points: Optional[np.ndarray] = None
    values: Optional[np.ndarray] = None
    tolerance: Optional[Tolerance] = None
    parameters: Optional[Tuple] = None
    error: Optional[Exception] = None

    @property
    def fixture_name(self) -> str:
        return self.fixture.name if self.fixture is not None else ''

    @property
    def kind(self) -> str:
        return self.family.kind

    def describe(self) -> str:
        """Short identifier, e.g. ``probability[test.binomial.1.properties]``."""
        if self.fixture is not None:
            return f"{self.category}[{self.fixture.name}]"
        return f"{self.category}[{self.parameters}]"


class ScenarioGenerator:
    """
    Builds scenario streams for every check category of a family.

    Parameters
    ----------
    family : DistributionFamily
        Family under test
    fixtures : list of Fixture, optional
        Fixtures to use; defaults to the family's cached fixtures
    sum_tolerance : float
        Tolerance of the probability-sums check
    """

    def __init__(self, family: DistributionFamily,
                 fixtures: Optional[List[Fixture]] = None,
                 sum_tolerance: float = PROBABILITY_SUM_TOLERANCE):
        self.family = family
        self.fixtures = list(family.fixtures if fixtures is None else fixtures)
        self.sum_tolerance = sum_tolerance
        self._instances: Dict[int, DistributionBase] = {}

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def distribution(self, fixture: Fixture) -> DistributionBase:
        """Distribution for a fixture, built on first use."""
        key = id(fixture)
        if key not in self._instances:
            self._instances[key] = self.family.make_distribution(fixture)
        return self._instances[key]

    @staticmethod
    def test_tolerance(fixture: Fixture) -> Tolerance:
        """Absolute tolerance, or absolute-or-relative when the fixture sets one."""
        tolerance = absolute(fixture.tolerance)
        if fixture.relative_tolerance > 0:
            tolerance = tolerance | relative(fixture.relative_tolerance)
        return tolerance

    @staticmethod
    def high_precision_tolerance(fixture: Fixture) -> Tolerance:
        return absolute(fixture.tolerance_hp)

    def _stream(self, category: str,
                points: Optional[Callable[[Fixture], np.ndarray]] = None,
                values: Optional[Callable[[Fixture], np.ndarray]] = None,
                tolerance: Optional[Callable[[Fixture], Tolerance]] = None,
                disabled: Optional[Callable[[Fixture], bool]] = None) -> Iterator[Scenario]:
        """
        Stream one scenario per applicable fixture.

        Raises
        ------
        CheckSkipped
            When exhausted without yielding anything
        """
        count = 0
        for fixture in self.fixtures:
            if disabled is not None and disabled(fixture):
                continue
            p = points(fixture) if points is not None else None
            if p is not None and len(p) == 0:
                continue
            count += 1
            distribution, error = None, None
            try:
                distribution = self.distribution(fixture)
            except Exception as e:
                error = e
            yield Scenario(
                category=category,
                family=self.family,
                fixture=fixture,
                distribution=distribution,
                error=error,
                points=p,
                values=values(fixture) if values is not None else None,
                tolerance=tolerance(fixture) if tolerance is not None else None,
            )
        if count == 0:
            raise CheckSkipped(f"Distribution has no data for {category}")

    # ------------------------------------------------------------------
    # Reference value streams
    # ------------------------------------------------------------------

    def probability(self) -> Iterator[Scenario]:
        return self._stream('probability',
                            lambda f: f.pmf_points, lambda f: f.pmf_values,
                            self.test_tolerance, lambda f: f.disable_pmf)

    def log_probability(self) -> Iterator[Scenario]:
        return self._stream('log_probability',
                            lambda f: f.pmf_points, lambda f: f.log_pmf_values,
                            self.test_tolerance, lambda f: f.disable_logpmf)

    def cumulative_probability(self) -> Iterator[Scenario]:
        return self._stream('cumulative_probability',
                            lambda f: f.cdf_points, lambda f: f.cdf_values,
                            self.test_tolerance, lambda f: f.disable_cdf)

    def survival_probability(self) -> Iterator[Scenario]:
        return self._stream('survival_probability',
                            lambda f: f.sf_points, lambda f: f.sf_values,
                            self.test_tolerance, lambda f: f.disable_sf)

    def cumulative_probability_high_precision(self) -> Iterator[Scenario]:
        return self._stream('cumulative_probability_high_precision',
                            lambda f: f.cdf_hp_points, lambda f: f.cdf_hp_values,
                            self.high_precision_tolerance)

    def survival_probability_high_precision(self) -> Iterator[Scenario]:
        return self._stream('survival_probability_high_precision',
                            lambda f: f.sf_hp_points, lambda f: f.sf_hp_values,
                            self.high_precision_tolerance)

    def inverse_cumulative_probability(self) -> Iterator[Scenario]:
        return self._stream('inverse_cumulative_probability',
                            lambda f: f.icdf_points, lambda f: f.icdf_values,
                            self.test_tolerance)

    # ------------------------------------------------------------------
    # Self-consistency streams
    # ------------------------------------------------------------------

    def cumulative_probability_inverse_mapping(self) -> Iterator[Scenario]:
        return self._stream('cumulative_probability_inverse_mapping',
                            lambda f: f.cdf_points, None,
                            self.test_tolerance, lambda f: f.disable_cdf_inverse)

    def survival_and_cumulative_probability_complement(self) -> Iterator[Scenario]:
        # Not disabled by disable_cdf/disable_sf: those flags only cover
        # reference values, this checks internal consistency
        return self._stream('survival_and_cumulative_probability_complement',
                            lambda f: f.cdf_points, None, self.test_tolerance)

    def consistency(self) -> Iterator[Scenario]:
        # Not disabled by disable_cdf, see above
        return self._stream('consistency',
                            lambda f: f.cdf_points, None, self.test_tolerance)

    def outside_support(self) -> Iterator[Scenario]:
        return self._stream('outside_support', tolerance=self.test_tolerance)

    def invalid_probabilities(self) -> Iterator[Scenario]:
        return self._stream('invalid_probabilities')

    def sampling(self) -> Iterator[Scenario]:
        if self.family.kind == 'continuous':
            # Sampled against the quartiles, no mass points needed
            return self._stream('sampling', disabled=lambda f: f.disable_sample)
        return self._stream('sampling',
                            lambda f: f.pmf_points, lambda f: f.pmf_values,
                            None, lambda f: f.disable_sample)

    def probability_sums(self) -> Iterator[Scenario]:
        # A distribution that cannot match reference mass values is not
        # expected to match reference CDF values with summed mass either
        if self.family.kind == 'continuous':
            tol = absolute(self.sum_tolerance) | relative(self.sum_tolerance)
        else:
            tol = absolute(self.sum_tolerance)
        return self._stream('probability_sums',
                            lambda f: f.cdf_points, lambda f: f.cdf_values,
                            lambda f: tol, lambda f: f.disable_pmf)

    def support(self) -> Iterator[Scenario]:
        return self._stream('support')

    def moments(self) -> Iterator[Scenario]:
        return self._stream('moments', tolerance=self.test_tolerance)

    def parameter_accessors(self) -> Iterator[Scenario]:
        if not self.family.parameter_accessors:
            raise CheckSkipped(f"Family '{self.family.name}' has no parameter accessors")
        return self._stream('parameter_accessors')

    def invalid_parameters(self) -> Iterator[Scenario]:
        if not self.family.invalid_parameters:
            raise CheckSkipped(f"Family '{self.family.name}' has no invalid parameters")
        return (Scenario(category='invalid_parameters', family=self.family,
                         parameters=tuple(parameters))
                for parameters in self.family.invalid_parameters)


__all__ = ['Scenario', 'ScenarioGenerator', 'PROBABILITY_SUM_TOLERANCE']
