"""
Data structures for pydistcheck.

This module defines the core data structures used throughout pydistcheck:
the Fixture class that holds one parameterized test case for a
distribution, and the CheckOutcome/BatteryReport classes that hold the
results of running the battery.

Author: pydistcheck Development Team
License: MIT
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .exceptions import CheckFailure, FixtureFormatError


DEFAULT_TOLERANCE = 1e-4
DEFAULT_HIGH_PRECISION_TOLERANCE = 1e-22

KINDS = ('discrete', 'continuous')

Number = Union[int, float]
ArrayLike = Union[Sequence[Number], np.ndarray]


def _as_points(values: Optional[ArrayLike], kind: str) -> Optional[np.ndarray]:
    """Convert to a read-only point array typed for the distribution kind."""
    if values is None:
        return None
    dtype = np.int64 if kind == 'discrete' else np.float64
    array = np.array(values, dtype=dtype).reshape(-1)
    array.setflags(write=False)
    return array


def _as_values(values: Optional[ArrayLike]) -> Optional[np.ndarray]:
    """Convert to a read-only float64 array."""
    if values is None:
        return None
    array = np.array(values, dtype=np.float64).reshape(-1)
    array.setflags(write=False)
    return array


def _empty(kind: Optional[str] = None) -> np.ndarray:
    return _as_points([], kind) if kind else _as_values([])


@dataclass
class Fixture:
    """
    One parameterized test case for a distribution.

    Optional arrays left as None are filled with their documented defaults
    in ``__post_init__``. All arrays are read-only once constructed.

    Attributes
    ----------
    parameters : tuple
        Values used to construct the distribution under test
    mean, variance : float
        Expected moments; NaN means the moment is not tested
    kind : str
        'discrete' (integer points) or 'continuous' (real points)
    name : str
        Identifier of the fixture source, used in diagnostics
    lower, upper : int or float
        Expected support bounds (default -inf, +inf)
    connected : bool
        Expected support connectivity
    tolerance : float
        Absolute tolerance for reference-value checks
    tolerance_hp : float
        Absolute tolerance for high-precision checks
    relative_tolerance : float
        Relative tolerance combined with ``tolerance`` when > 0
    cdf_points, cdf_values : np.ndarray
        Cumulative probability test data
    pmf_points, pmf_values, log_pmf_values : np.ndarray
        Mass (discrete) or density (continuous) test data. The points
        default to ``cdf_points`` and the log values to log(pmf_values)
    sf_points, sf_values : np.ndarray
        Survival test data. Default to ``cdf_points`` and 1 - ``cdf_values``
    cdf_hp_points, cdf_hp_values, sf_hp_points, sf_hp_values : np.ndarray
        High-precision test data (empty by default)
    icdf_points, icdf_values : np.ndarray
        Probabilities and expected inverse cumulative values (empty = ignore)
    disable_* : bool
        Suppress one category of check for this fixture only
    """

    parameters: Tuple[Number, ...]
    mean: float
    variance: float
    kind: str = 'discrete'
    name: str = ''
    lower: Number = -math.inf
    upper: Number = math.inf
    connected: bool = True
    tolerance: float = DEFAULT_TOLERANCE
    tolerance_hp: float = DEFAULT_HIGH_PRECISION_TOLERANCE
    relative_tolerance: float = 0.0

    cdf_points: Optional[ArrayLike] = None
    cdf_values: Optional[ArrayLike] = None
    pmf_points: Optional[ArrayLike] = None
    pmf_values: Optional[ArrayLike] = None
    log_pmf_values: Optional[ArrayLike] = None
    sf_points: Optional[ArrayLike] = None
    sf_values: Optional[ArrayLike] = None
    cdf_hp_points: Optional[ArrayLike] = None
    cdf_hp_values: Optional[ArrayLike] = None
    sf_hp_points: Optional[ArrayLike] = None
    sf_hp_values: Optional[ArrayLike] = None
    icdf_points: Optional[ArrayLike] = None
    icdf_values: Optional[ArrayLike] = None

    disable_sample: bool = False
    disable_pmf: bool = False
    disable_logpmf: bool = False
    disable_cdf: bool = False
    disable_sf: bool = False
    disable_cdf_inverse: bool = False

    def __post_init__(self):
        """Apply defaults, convert arrays and validate pairings."""
        if self.kind not in KINDS:
            raise FixtureFormatError(f"Unknown distribution kind: {self.kind}. "
                                     f"Must be one of {KINDS}", source=self.name)
        self.parameters = tuple(self.parameters)
        kind = self.kind

        self.cdf_points = _as_points(self.cdf_points, kind)
        self.cdf_values = _as_values(self.cdf_values)
        if self.cdf_points is None:
            self.cdf_points = _empty(kind)
        if self.cdf_values is None:
            self.cdf_values = _empty()

        # Mass data defaults to the CDF points; without values there is no data
        self.pmf_values = _as_values(self.pmf_values)
        if self.pmf_values is None:
            self.pmf_values = _empty()
            self.pmf_points = _empty(kind) if self.pmf_points is None else _as_points(self.pmf_points, kind)
        else:
            self.pmf_points = _as_points(
                self.cdf_points if self.pmf_points is None else self.pmf_points, kind)
        if self.log_pmf_values is None:
            with np.errstate(divide='ignore', invalid='ignore'):
                self.log_pmf_values = np.log(self.pmf_values)
        self.log_pmf_values = _as_values(self.log_pmf_values)

        if self.sf_points is None:
            self.sf_points = self.cdf_points
            if self.sf_values is None:
                self.sf_values = 1.0 - self.cdf_values
        self.sf_points = _as_points(self.sf_points, kind)
        self.sf_values = _as_values(self.sf_values if self.sf_values is not None else [])

        self.cdf_hp_points = _as_points(self.cdf_hp_points if self.cdf_hp_points is not None else [], kind)
        self.cdf_hp_values = _as_values(self.cdf_hp_values if self.cdf_hp_values is not None else [])
        self.sf_hp_points = _as_points(self.sf_hp_points if self.sf_hp_points is not None else [], kind)
        self.sf_hp_values = _as_values(self.sf_hp_values if self.sf_hp_values is not None else [])

        self.icdf_points = _as_values(self.icdf_points if self.icdf_points is not None else [])
        icdf_values = self.icdf_values if self.icdf_values is not None else []
        self.icdf_values = _as_points(icdf_values, kind)

        self._check_pair('cdf', self.cdf_points, self.cdf_values)
        self._check_pair('pmf', self.pmf_points, self.pmf_values)
        self._check_pair('logpmf', self.pmf_points, self.log_pmf_values)
        self._check_pair('sf', self.sf_points, self.sf_values)
        self._check_pair('cdf.hp', self.cdf_hp_points, self.cdf_hp_values)
        self._check_pair('sf.hp', self.sf_hp_points, self.sf_hp_values)
        self._check_pair('icdf', self.icdf_points, self.icdf_values)

    def _check_pair(self, label: str, points: np.ndarray, values: np.ndarray) -> None:
        if len(points) != len(values):
            raise FixtureFormatError(
                f"Points and values length mismatch for {label}: "
                f"{len(points)} points, {len(values)} values",
                source=self.name, key=label
            )

    @property
    def is_discrete(self) -> bool:
        return self.kind == 'discrete'

    def __repr__(self) -> str:
        return (f"Fixture(name='{self.name}', kind='{self.kind}', "
                f"parameters={self.parameters})")


@dataclass
class BatteryConfig:
    """
    Settings for one battery run.

    Attributes
    ----------
    seed : int
        Seed of the random source handed to samplers. A fixed seed makes
        the sampling checks reproducible.
    sample_size : int
        Number of draws for the chi-square sampling checks
    degenerate_draws : int
        Number of draws when only one point carries mass
    significance_level : float
        Chi-square rejection level. The sampling check can fail at random
        with this probability.
    min_sampled_mass : float
        Sampling is skipped unless the tested points carry more mass
    sum_tolerance : float
        Tolerance of the probability-sums check
    max_sum_gap : int
        Consecutive CDF points further apart are not summed
    probability_margin : float
        CDF values within this distance of 0 or 1 are not summed
    verbose : bool
        Print progress while running
    """
    seed: int = 1234567890
    sample_size: int = 1000
    degenerate_draws: int = 20
    significance_level: float = 0.001
    min_sampled_mass: float = 0.5
    sum_tolerance: float = 1e-9
    max_sum_gap: int = 50
    probability_margin: float = 1e-5
    verbose: bool = False

    def __post_init__(self):
        if self.sample_size <= 0:
            raise ValueError(f"sample_size must be positive, got {self.sample_size}")
        if self.degenerate_draws <= 0:
            raise ValueError(f"degenerate_draws must be positive, got {self.degenerate_draws}")
        if not 0 < self.significance_level < 0.5:
            raise ValueError(
                f"significance_level must be in (0, 0.5), got {self.significance_level}"
            )
        if not 0 <= self.min_sampled_mass <= 1:
            raise ValueError(
                f"min_sampled_mass must be in [0, 1], got {self.min_sampled_mass}"
            )


STATUSES = ('passed', 'failed', 'skipped', 'error')


@dataclass
class CheckOutcome:
    """
    Result of running one check against one scenario.

    Attributes
    ----------
    check : str
        Registered name of the check
    fixture : str
        Name of the fixture the scenario came from ('' for family-wide checks)
    status : str
        One of 'passed', 'failed', 'skipped', 'error'
    message : str
        Failure, skip or error description
    """
    check: str
    fixture: str
    status: str
    message: str = ""

    def __post_init__(self):
        if self.status not in STATUSES:
            raise ValueError(f"Invalid status: {self.status}. Must be one of {STATUSES}")


@dataclass
class BatteryReport:
    """
    Aggregated outcomes of running the battery against a distribution family.

    Attributes
    ----------
    family : str
        Name of the distribution family
    outcomes : List[CheckOutcome]
        One entry per scenario run (or per skipped check)
    computation_time : float
        Wall time in seconds
    """
    family: str
    outcomes: List[CheckOutcome] = field(default_factory=list)
    computation_time: float = 0.0

    @property
    def failures(self) -> List[CheckOutcome]:
        """Outcomes with status 'failed' or 'error'."""
        return [o for o in self.outcomes if o.status in ('failed', 'error')]

    @property
    def skipped(self) -> List[CheckOutcome]:
        return [o for o in self.outcomes if o.status == 'skipped']

    @property
    def passed(self) -> bool:
        """Whether no outcome failed or errored."""
        return not self.failures

    def counts(self) -> Dict[str, int]:
        """Number of outcomes per status."""
        counts = {status: 0 for status in STATUSES}
        for outcome in self.outcomes:
            counts[outcome.status] += 1
        return counts

    def summary(self) -> str:
        """Generate human-readable summary of the battery results."""
        counts = self.counts()
        lines = [
            f"Distribution battery: {self.family}",
            "=" * 40,
            f"Passed:  {counts['passed']}",
            f"Failed:  {counts['failed']}",
            f"Errors:  {counts['error']}",
            f"Skipped: {counts['skipped']}",
            f"Computation time: {self.computation_time:.3f}s",
        ]
        if self.failures:
            lines.append("\nFailures:")
            lines.append("-" * 40)
            for outcome in self.failures:
                where = f" [{outcome.fixture}]" if outcome.fixture else ""
                lines.append(f"{outcome.check}{where}: {outcome.message}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.summary()

    def to_frame(self) -> pd.DataFrame:
        """
        Convert outcomes to a DataFrame.

        Returns
        -------
        pd.DataFrame
            Columns: check, fixture, status, message
        """
        return pd.DataFrame(
            [(o.check, o.fixture, o.status, o.message) for o in self.outcomes],
            columns=['check', 'fixture', 'status', 'message']
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'family': self.family,
            'computation_time': self.computation_time,
            'counts': self.counts(),
            'outcomes': [
                {'check': o.check, 'fixture': o.fixture,
                 'status': o.status, 'message': o.message}
                for o in self.outcomes
            ]
        }

    def raise_for_failures(self) -> None:
        """
        Raise if any check failed.

        Raises
        ------
        CheckFailure
            Listing every failed or errored outcome
        """
        if self.passed:
            return
        details = "\n".join(
            f"  {o.check} [{o.fixture}]: {o.message}" for o in self.failures
        )
        raise CheckFailure(
            f"{len(self.failures)} check(s) failed for {self.family}:\n{details}"
        )


__all__ = [
    'Fixture', 'BatteryConfig', 'CheckOutcome', 'BatteryReport',
    'DEFAULT_TOLERANCE', 'DEFAULT_HIGH_PRECISION_TOLERANCE', 'KINDS'
]
