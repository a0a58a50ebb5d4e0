#!/usr/bin/env python3
"""
Unit tests for the tolerance model.
"""

import math
import sys
import unittest
from pathlib import Path

import numpy as np

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from pydistcheck.exceptions import CheckFailure
from pydistcheck.tolerances import (
    AbsoluteTolerance,
    CombinedTolerance,
    absolute,
    assert_close,
    assert_exact,
    combined,
    relative,
)


class TestAbsoluteTolerance(unittest.TestCase):
    """Absolute error predicate."""

    def test_within_and_outside(self):
        """Errors up to the tolerance pass."""
        tol = absolute(0.1)
        self.assertTrue(tol.test(1.0, 1.05))
        self.assertTrue(tol.test(1.0, 0.95))
        self.assertFalse(tol.test(1.0, 1.2))

    def test_zero_tolerance_is_exact(self):
        """Zero tolerance demands equality."""
        tol = absolute(0.0)
        self.assertTrue(tol.test(0.25, 0.25))
        self.assertFalse(tol.test(0.25, float(np.nextafter(0.25, 1.0))))

    def test_negative_tolerance_rejected(self):
        """Negative tolerances are rejected."""
        with self.assertRaises(ValueError):
            AbsoluteTolerance(-1e-3)

    def test_callable(self):
        """Tolerances are callable."""
        self.assertTrue(absolute(1e-3)(2.0, 2.0005))


class TestRelativeTolerance(unittest.TestCase):
    """Relative error predicate."""

    def test_scales_with_magnitude(self):
        """Allowed error grows with magnitude."""
        tol = relative(1e-3)
        self.assertTrue(tol.test(1000.0, 1000.5))
        self.assertFalse(tol.test(1.0, 1.01))

    def test_zero_only_matches_zero(self):
        """Zero relative to zero is the only match."""
        tol = relative(1e-3)
        self.assertTrue(tol.test(0.0, 0.0))
        self.assertFalse(tol.test(0.0, 1e-300))


class TestSpecialValues(unittest.TestCase):
    """NaN and infinity handling shared by every predicate."""

    def setUp(self):
        self.tolerances = [absolute(1e-3), relative(1e-3), combined(1e-3, 1e-3)]

    def test_nan_equals_nan(self):
        """NaN matches NaN."""
        for tol in self.tolerances:
            self.assertTrue(tol.test(math.nan, math.nan), tol)

    def test_nan_differs_from_number(self):
        """NaN never matches a number."""
        for tol in self.tolerances:
            self.assertFalse(tol.test(math.nan, 1.0), tol)
            self.assertFalse(tol.test(1.0, math.nan), tol)

    def test_infinities(self):
        """Infinities match only themselves."""
        for tol in self.tolerances:
            self.assertTrue(tol.test(-math.inf, -math.inf), tol)
            self.assertFalse(tol.test(math.inf, -math.inf), tol)
            self.assertFalse(tol.test(math.inf, 1e308), tol)


class TestCombinedTolerance(unittest.TestCase):
    """Absolute OR relative."""

    def test_either_passes(self):
        """Either part passing is enough."""
        tol = combined(1e-9, 1e-3)
        self.assertIsInstance(tol, CombinedTolerance)
        # Relative passes
        self.assertTrue(tol.test(1e6, 1e6 + 1))
        # Absolute passes
        self.assertTrue(tol.test(0.0, 1e-10))
        # Neither passes
        self.assertFalse(tol.test(1.0, 1.1))

    def test_or_operator(self):
        """The | operator combines tolerances."""
        tol = absolute(1e-9) | relative(1e-3)
        self.assertTrue(tol.test(1e6, 1e6 + 1))
        self.assertIn("abs=1e-09", tol.description)
        self.assertIn("rel=0.001", tol.description)


class TestAssertions(unittest.TestCase):
    """assert_close and assert_exact."""

    def test_assert_close_passes(self):
        """Close values pass."""
        assert_close(0.5, 0.5 + 1e-12, absolute(1e-10))

    def test_assert_close_failure_carries_context(self):
        """Failures carry expected, actual and point."""
        with self.assertRaises(CheckFailure) as context:
            assert_close(0.5, 0.6, absolute(1e-10),
                         lambda: "Incorrect value returned for 3", point=3)
        error = context.exception
        self.assertIn("for 3", str(error))
        self.assertEqual(error.expected, 0.5)
        self.assertEqual(error.actual, 0.6)
        self.assertEqual(error.point, 3)

    def test_message_callable_not_evaluated_on_success(self):
        """Lazy messages are not built on success."""
        calls = []
        assert_close(1.0, 1.0, absolute(0.0), lambda: calls.append(1) or "x")
        self.assertEqual(calls, [])

    def test_assert_exact(self):
        """Exact comparison treats NaN as equal."""
        assert_exact(7, 7.0)
        assert_exact(math.nan, math.nan)
        assert_exact(-math.inf, -math.inf)
        with self.assertRaises(CheckFailure):
            assert_exact(0.0, 1e-300)

    def test_assert_exact_non_numeric(self):
        """Non-numeric values compare with ==."""
        assert_exact(True, True)
        with self.assertRaises(CheckFailure):
            assert_exact("a", "b")


if __name__ == '__main__':
    unittest.main()
