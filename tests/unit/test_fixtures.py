"""
Unit tests for fixture loading.

Covers the key schema, defaulting rules, fail-fast batch loading and the
per-family fixture cache.
"""

import math
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from pydistcheck.data_structures import DEFAULT_HIGH_PRECISION_TOLERANCE, DEFAULT_TOLERANCE
from pydistcheck.exceptions import FixtureFormatError
from pydistcheck.fixtures import FixtureCache, load_fixture, load_fixtures, schema_keys


def minimal(**extra):
    props = {'parameters': '10 0.5', 'mean': '5', 'variance': '2.5'}
    props.update(extra)
    return props


class TestLoadFixture:
    """Single source parsing."""

    def test_minimal_defaults(self):
        """Only the mandatory keys are needed."""
        fixture = load_fixture(minimal(), name='min')
        assert fixture.parameters == (10, 0.5)
        assert isinstance(fixture.parameters[0], int)
        assert isinstance(fixture.parameters[1], float)
        assert fixture.mean == 5.0
        assert fixture.variance == 2.5
        assert fixture.tolerance == DEFAULT_TOLERANCE
        assert fixture.tolerance_hp == DEFAULT_HIGH_PRECISION_TOLERANCE
        assert fixture.relative_tolerance == 0.0
        assert fixture.lower == -math.inf
        assert fixture.upper == math.inf
        assert fixture.connected is True
        assert len(fixture.cdf_points) == 0
        assert len(fixture.pmf_points) == 0
        assert len(fixture.icdf_points) == 0
        assert not fixture.disable_sample

    def test_explicit_values(self):
        """Optional keys override the defaults."""
        fixture = load_fixture(minimal(
            lower='0', upper='10', connected='false',
            tolerance='1e-10', **{'tolerance.hp': '1e-30', 'tolerance.relative': '1e-12'}
        ))
        assert fixture.lower == 0 and isinstance(fixture.lower, int)
        assert fixture.upper == 10
        assert fixture.connected is False
        assert fixture.tolerance == 1e-10
        assert fixture.tolerance_hp == 1e-30
        assert fixture.relative_tolerance == 1e-12

    def test_family_defaults_apply(self):
        """Family defaults apply when the source is silent."""
        fixture = load_fixture(minimal(), tolerance=1e-6, connected=False)
        assert fixture.tolerance == 1e-6
        assert fixture.connected is False

    def test_infinite_bound(self):
        """Infinity parses as an unbounded support."""
        fixture = load_fixture(minimal(upper='Infinity'))
        assert fixture.upper == math.inf

    def test_mass_points_default_to_cdf_points(self):
        """Mass points default to the CDF points."""
        fixture = load_fixture(minimal(**{
            'cdf.points': '0, 1, 2',
            'cdf.values': '0.25, 0.75, 1',
            'pmf.values': '0.25, 0.5, 0.25',
        }))
        np.testing.assert_array_equal(fixture.pmf_points, [0, 1, 2])
        np.testing.assert_allclose(fixture.log_pmf_values, np.log([0.25, 0.5, 0.25]))

    def test_no_mass_values_means_no_mass_data(self):
        """Without mass values there is no mass data."""
        fixture = load_fixture(minimal(**{'cdf.points': '0, 1', 'cdf.values': '0.5, 1'}))
        assert len(fixture.pmf_points) == 0
        assert len(fixture.log_pmf_values) == 0

    def test_log_of_zero_mass(self):
        """Zero mass has log mass -inf."""
        fixture = load_fixture(minimal(**{'pmf.points': '0, 1', 'pmf.values': '0, 0.5'}))
        assert fixture.log_pmf_values[0] == -math.inf

    def test_survival_defaults(self):
        """Survival data defaults to the CDF complement."""
        fixture = load_fixture(minimal(**{'cdf.points': '0, 1', 'cdf.values': '0.25, 1'}))
        np.testing.assert_array_equal(fixture.sf_points, [0, 1])
        np.testing.assert_allclose(fixture.sf_values, [0.75, 0.0])

    def test_survival_points_without_values(self):
        """Survival points need survival values."""
        with pytest.raises(FixtureFormatError, match="sf"):
            load_fixture(minimal(**{
                'cdf.points': '0, 1', 'cdf.values': '0.25, 1', 'sf.points': '0, 1'
            }))

    def test_discrete_points_are_integers(self):
        """Discrete points parse as integers only."""
        fixture = load_fixture(minimal(**{'cdf.points': '0, 1', 'cdf.values': '0.5, 1'}))
        assert fixture.cdf_points.dtype == np.int64
        with pytest.raises(FixtureFormatError, match="integer"):
            load_fixture(minimal(**{'cdf.points': '0.5', 'cdf.values': '0.5'}))

    def test_arrays_are_read_only(self):
        """Loaded arrays cannot be modified."""
        fixture = load_fixture(minimal(**{'cdf.points': '0, 1', 'cdf.values': '0.5, 1'}))
        assert not fixture.cdf_values.flags.writeable
        with pytest.raises(ValueError):
            fixture.cdf_values[0] = 0.0

    def test_inverse_keys(self):
        """Inverse data is read from the icdf keys."""
        fixture = load_fixture(minimal(**{'icdf.points': '0, 0.5', 'icdf.values': '0, 5'}))
        np.testing.assert_array_equal(fixture.icdf_points, [0.0, 0.5])
        np.testing.assert_array_equal(fixture.icdf_values, [0, 5])

    def test_inverse_mass_alias(self):
        """ipmf keys are an alias for discrete inverse data."""
        fixture = load_fixture(minimal(**{'ipmf.points': '0.5', 'ipmf.values': '5'}))
        np.testing.assert_array_equal(fixture.icdf_values, [5])

    def test_disable_flags(self):
        """Disable flags parse case-insensitively."""
        fixture = load_fixture(minimal(**{
            'disable.sample': 'true', 'disable.pmf': 'TRUE', 'disable.logpmf': 'false',
            'disable.cdf': 'true', 'disable.sf': 'true', 'disable.cdf.inverse': 'true',
        }))
        assert fixture.disable_sample and fixture.disable_pmf and fixture.disable_cdf
        assert fixture.disable_sf and fixture.disable_cdf_inverse
        assert not fixture.disable_logpmf

    def test_continuous_keys(self):
        """Continuous fixtures use the pdf keys."""
        fixture = load_fixture({
            'parameters': '1.0', 'mean': '1', 'variance': '1',
            'cdf.points': '0.5, 1', 'cdf.values': '0.39, 0.63',
            'pdf.values': '0.6, 0.37', 'disable.pdf': 'true',
        }, kind='continuous')
        assert fixture.cdf_points.dtype == np.float64
        np.testing.assert_array_equal(fixture.pmf_points, [0.5, 1.0])
        assert fixture.disable_pmf

    def test_nan_moments_allowed(self):
        """NaN moments are allowed."""
        fixture = load_fixture(minimal(mean='NaN', variance='NaN'))
        assert math.isnan(fixture.mean) and math.isnan(fixture.variance)

    def test_unknown_key_warns(self):
        """Unknown keys warn without failing."""
        with pytest.warns(UserWarning, match="unrecognised"):
            load_fixture(minimal(bogus='1'))

    def test_schema_keys(self):
        """Schema lists the keys for each kind."""
        required, optional = schema_keys('discrete')
        assert required == ['parameters', 'mean', 'variance']
        assert 'pmf.points' in optional and 'ipmf.values' in optional
        _, optional = schema_keys('continuous')
        assert 'pdf.points' in optional and 'pmf.points' not in optional


class TestLoadErrors:
    """Malformed sources name the source and the key."""

    def test_missing_mandatory_key(self):
        """A missing mandatory key names itself."""
        props = minimal()
        del props['mean']
        with pytest.raises(FixtureFormatError) as excinfo:
            load_fixture(props, name='test.binomial.1.properties')
        assert excinfo.value.source == 'test.binomial.1.properties'
        assert excinfo.value.key == 'mean'
        assert "test.binomial.1.properties" in str(excinfo.value)

    def test_bad_number(self):
        """Unparsable numbers are rejected."""
        with pytest.raises(FixtureFormatError, match="variance"):
            load_fixture(minimal(variance='abc'))

    def test_bad_parameter_names_position(self):
        """Parameter errors name the position and parameter."""
        with pytest.raises(FixtureFormatError, match="trials"):
            load_fixture(minimal(parameters='x 0.5'), parameter_names=['trials', 'p'])

    def test_empty_parameters(self):
        """Blank parameters are rejected."""
        with pytest.raises(FixtureFormatError):
            load_fixture(minimal(parameters=''))

    def test_bad_boolean(self):
        """Only true and false are booleans."""
        with pytest.raises(FixtureFormatError, match="boolean"):
            load_fixture(minimal(connected='yes'))

    def test_fractional_inverse_points_name_keys(self):
        """Non-integer discrete inverse values say which keys are expected."""
        props = minimal(**{'icdf.points': '0, 0.5', 'icdf.values': '0.0, 0.5'})
        with pytest.raises(FixtureFormatError, match="Cannot parse '0.0' as an integer") as excinfo:
            load_fixture(props)
        assert "icdf.points (probabilities)" in str(excinfo.value)
        assert "ipmf.points/ipmf.values" in str(excinfo.value)
        assert excinfo.value.key == 'icdf.values'

    def test_inverse_values_without_points(self):
        """Inverse values alone are rejected with the accepted key pair."""
        with pytest.raises(FixtureFormatError, match="icdf.points") as excinfo:
            load_fixture(minimal(**{'ipmf.values': '0, 5'}))
        assert excinfo.value.key == 'ipmf.points'

    def test_length_mismatch(self):
        """Points and values must have equal length."""
        with pytest.raises(FixtureFormatError, match="mismatch"):
            load_fixture(minimal(**{'cdf.points': '0, 1, 2', 'cdf.values': '0.5, 1'}))

    def test_unknown_kind(self):
        """Unknown kinds are rejected."""
        with pytest.raises(ValueError):
            load_fixture(minimal(), kind='mixed')

    def test_error_is_value_error(self):
        """Format errors are ValueErrors."""
        assert issubclass(FixtureFormatError, ValueError)


class TestLoadFixtures:
    """Batch loading."""

    def test_order_and_names(self):
        """Batch keeps source order and names unnamed sources."""
        fixtures = load_fixtures([('first', minimal()), minimal(parameters='3 0.1')])
        assert [f.name for f in fixtures] == ['first', 'source 2']
        assert fixtures[1].parameters == (3, 0.1)

    def test_fail_fast(self):
        """One malformed source fails the batch."""
        bad = minimal()
        del bad['variance']
        with pytest.raises(FixtureFormatError) as excinfo:
            load_fixtures([('good', minimal()), ('bad', bad)])
        assert excinfo.value.source == 'bad'

    def test_length_mismatch_aborts_batch(self):
        """A length mismatch in any source fails the batch."""
        bad = minimal(**{"cdf.points": "0, 1, 2", "cdf.values": "0.1, 0.2"})
        with pytest.raises(FixtureFormatError) as excinfo:
            load_fixtures([minimal(), minimal(), ('short', bad)])
        assert excinfo.value.source == 'short'
        assert excinfo.value.key == 'cdf'

    def test_verbose(self, capsys):
        """Verbose loading prints each fixture."""
        load_fixtures([('one', minimal())], verbose=True)
        assert "Loaded one" in capsys.readouterr().out


class TestFixtureCache:
    """Memoization per family."""

    def test_loads_once(self):
        """Fixtures are loaded once per family."""
        cache = FixtureCache()
        calls = []

        def loader():
            calls.append(1)
            return load_fixtures([minimal()])

        first = cache.get('binomial', loader)
        second = cache.get('binomial', loader)
        assert first is second
        assert len(calls) == 1
        assert 'binomial' in cache and len(cache) == 1

    def test_failed_load_not_cached(self):
        """A failed load is retried next time."""
        cache = FixtureCache()

        def loader():
            raise FixtureFormatError("broken", source='x')

        for _ in range(2):
            with pytest.raises(FixtureFormatError):
                cache.get('broken', loader)
        assert 'broken' not in cache

    def test_clear(self):
        """Entries clear individually or all together."""
        cache = FixtureCache()
        cache.get('a', lambda: [])
        cache.get('b', lambda: [])
        cache.clear('a')
        assert 'a' not in cache and 'b' in cache
        cache.clear()
        assert len(cache) == 0
