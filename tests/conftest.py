"""
Pytest configuration for pydistcheck tests.

Provides the fixture resource directory, markers for the battery tests and
a helper that turns a battery case into a pytest outcome.
"""

import sys
import warnings
from pathlib import Path

import numpy as np
import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydistcheck import CheckSkipped

RESOURCES = Path(__file__).parent / 'resources'

np.set_printoptions(precision=17, suppress=False)

# scipy warns on log(0) outside the support; the battery expects -inf there
warnings.filterwarnings('ignore', message='.*divide by zero.*', category=RuntimeWarning)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "battery: test runs a battery case against a distribution family"
    )
    config.addinivalue_line(
        "markers", "sampling: test draws random samples (can fail with probability alpha)"
    )
    config.addinivalue_line(
        "markers", "reference: test compares against published reference values"
    )


def pytest_collection_modifyitems(config, items):
    """Mark battery and sampling tests by name."""
    for item in items:
        if "test_battery" in item.name:
            item.add_marker(pytest.mark.battery)
        if "sampling" in item.name:
            item.add_marker(pytest.mark.sampling)


def _run_case(case):
    try:
        case.run()
    except CheckSkipped as e:
        pytest.skip(str(e))


@pytest.fixture
def run_case():
    """Run a battery case, reporting CheckSkipped as a pytest skip."""
    return _run_case


@pytest.fixture(scope="session")
def resources_dir():
    """Directory holding the test.<family>.<n>.properties files."""
    return RESOURCES
