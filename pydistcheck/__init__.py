"""
pydistcheck: Data-driven conformance testing for probability distributions

Runs a fixed battery of reference-value, self-consistency and sampling
checks against any distribution implementation that exposes the
discrete or continuous distribution interface. Reference data comes from
per-family fixture files, so adding a parameterization means adding a
file rather than writing code.

Author: pydistcheck Development Team
License: MIT
"""

__version__ = "0.1.0"
__author__ = "pydistcheck Development Team"
__license__ = "MIT"

# Distribution interface
from .distributions import (
    DOMAIN_MIN,
    DOMAIN_MAX,
    Sampler,
    DistributionBase,
    DiscreteDistribution,
    ContinuousDistribution
)

# Data structures
from .data_structures import Fixture, BatteryConfig, CheckOutcome, BatteryReport

# Errors
from .exceptions import FixtureFormatError, CheckFailure, CheckSkipped, DistributionError

# Tolerances
from .tolerances import Tolerance, absolute, relative, combined, assert_close, assert_exact

# Fixtures and families
from .fixtures import load_fixture, load_fixtures, FixtureCache
from ._properties import parse_properties, read_properties
from .families import (
    DistributionFamily,
    register_family,
    get_family,
    list_families,
    unregister_family
)

# Battery
from .scenarios import Scenario, ScenarioGenerator
from .harness import run_battery, iter_cases, list_checks, Case

# SciPy adapters
from .adapters import ScipyDiscreteDistribution, ScipyContinuousDistribution


__all__ = [
    # Interface
    'DOMAIN_MIN', 'DOMAIN_MAX', 'Sampler', 'DistributionBase',
    'DiscreteDistribution', 'ContinuousDistribution',
    # Data structures
    'Fixture', 'BatteryConfig', 'CheckOutcome', 'BatteryReport',
    # Errors
    'FixtureFormatError', 'CheckFailure', 'CheckSkipped', 'DistributionError',
    # Tolerances
    'Tolerance', 'absolute', 'relative', 'combined', 'assert_close', 'assert_exact',
    # Fixtures and families
    'load_fixture', 'load_fixtures', 'FixtureCache',
    'parse_properties', 'read_properties',
    'DistributionFamily', 'register_family', 'get_family',
    'list_families', 'unregister_family',
    # Battery
    'Scenario', 'ScenarioGenerator', 'run_battery', 'iter_cases', 'list_checks', 'Case',
    # Adapters
    'ScipyDiscreteDistribution', 'ScipyContinuousDistribution',
]
