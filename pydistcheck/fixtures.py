"""
Fixture loading for pydistcheck
===============================

Converts opaque key/value sources (one per parameterized distribution) into
typed Fixture objects. The parse is a single pass over a fixed schema of
required and optional keys. Any malformed source aborts the whole batch:
either every fixture loads or none does.

Key Functions:
- load_fixture(): parse one source
- load_fixtures(): parse an ordered batch of sources
- FixtureCache: memoize loaded batches per distribution family

Author: pydistcheck Development Team
License: MIT
"""

import math
import warnings
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .data_structures import (
    DEFAULT_HIGH_PRECISION_TOLERANCE,
    DEFAULT_TOLERANCE,
    KINDS,
    Fixture,
)
from .exceptions import FixtureFormatError


Source = Union[Mapping[str, str], Tuple[str, Mapping[str, str]]]

_TRUE = 'true'
_FALSE = 'false'


def _density_prefix(kind: str) -> str:
    return 'pmf' if kind == 'discrete' else 'pdf'


def schema_keys(kind: str) -> Tuple[List[str], List[str]]:
    """
    Keys understood by the loader for a distribution kind.

    Parameters
    ----------
    kind : str
        'discrete' or 'continuous'

    Returns
    -------
    required : list of str
        Keys that must be present
    optional : list of str
        Keys that may be present
    """
    d = _density_prefix(kind)
    required = ['parameters', 'mean', 'variance']
    optional = [
        'lower', 'upper', 'connected',
        'tolerance', 'tolerance.hp', 'tolerance.relative',
        'cdf.points', 'cdf.values',
        f'{d}.points', f'{d}.values', f'log{d}.values',
        'sf.points', 'sf.values',
        'cdf.hp.points', 'cdf.hp.values',
        'sf.hp.points', 'sf.hp.values',
        'icdf.points', 'icdf.values',
        'disable.sample', f'disable.{d}', f'disable.log{d}',
        'disable.cdf', 'disable.sf', 'disable.cdf.inverse',
    ]
    if kind == 'discrete':
        optional += ['ipmf.points', 'ipmf.values']
    return required, optional


class _SourceReader:
    """Typed accessors over one raw source; every failure names the source."""

    def __init__(self, name: str, properties: Mapping[str, str]):
        self.name = name
        self.properties = properties

    def _fail(self, key: str, message: str) -> FixtureFormatError:
        return FixtureFormatError(message, source=self.name, key=key)

    def raw(self, key: str, required: bool = False) -> Optional[str]:
        value = self.properties.get(key)
        if value is None:
            if required:
                raise self._fail(key, "Missing mandatory key")
            return None
        return str(value).strip()

    def double(self, key: str, default: Optional[float] = None,
               required: bool = False) -> Optional[float]:
        value = self.raw(key, required)
        if value is None:
            return default
        return self._to_double(key, value)

    def _to_double(self, key: str, token: str) -> float:
        try:
            return float(token)
        except ValueError:
            raise self._fail(key, f"Cannot parse '{token}' as a number")

    def _to_int(self, key: str, token: str) -> int:
        try:
            return int(token)
        except ValueError:
            raise self._fail(key, f"Cannot parse '{token}' as an integer")

    def _to_number(self, key: str, token: str) -> Union[int, float]:
        try:
            return int(token)
        except ValueError:
            return self._to_double(key, token)

    def bound(self, key: str, default: float, kind: str) -> Union[int, float]:
        value = self.raw(key)
        if value is None:
            return default
        if kind == 'discrete':
            return self._to_number(key, value)
        return self._to_double(key, value)

    def boolean(self, key: str, default: bool) -> bool:
        value = self.raw(key)
        if value is None:
            return default
        lowered = value.lower()
        if lowered == _TRUE:
            return True
        if lowered == _FALSE:
            return False
        raise self._fail(key, f"Cannot parse '{value}' as a boolean (true/false)")

    def _tokens(self, value: str) -> List[str]:
        if not value:
            return []
        return [token.strip() for token in value.split(',')]

    def doubles(self, key: str) -> Optional[List[float]]:
        value = self.raw(key)
        if value is None:
            return None
        return [self._to_double(key, token) for token in self._tokens(value)]

    def points(self, key: str, kind: str) -> Optional[List[Union[int, float]]]:
        value = self.raw(key)
        if value is None:
            return None
        convert = self._to_int if kind == 'discrete' else self._to_double
        return [convert(key, token) for token in self._tokens(value)]

    def parameters(self, parameter_names: Optional[Sequence[str]]) -> Tuple:
        value = self.raw('parameters', required=True)
        tokens = value.split()
        if not tokens:
            raise self._fail('parameters', "No parameters given")
        parsed = []
        for i, token in enumerate(tokens):
            label = f"parameters[{i}]"
            if parameter_names is not None and i < len(parameter_names):
                label += f" ({parameter_names[i]})"
            parsed.append(self._to_number(label, token))
        return tuple(parsed)


def _inverse_usage(kind: str) -> str:
    if kind == 'discrete':
        return ("inverse cumulative data is given as icdf.points (probabilities) "
                "with icdf.values (integer points); ipmf.points/ipmf.values "
                "are accepted instead")
    return ("inverse cumulative data is given as icdf.points (probabilities) "
            "with icdf.values (points)")


def _inverse_pair(reader: _SourceReader, prefix: str, kind: str):
    points_key, values_key = f'{prefix}.points', f'{prefix}.values'
    has_points = reader.raw(points_key) is not None
    has_values = reader.raw(values_key) is not None
    if has_points != has_values:
        missing = values_key if has_points else points_key
        raise reader._fail(missing, f"Missing key; {_inverse_usage(kind)}")
    try:
        return reader.doubles(points_key), reader.points(values_key, kind)
    except FixtureFormatError as e:
        raise reader._fail(e.key, f"{e.message}; {_inverse_usage(kind)}") from e


def load_fixture(properties: Mapping[str, str],
                 name: str = '',
                 kind: str = 'discrete',
                 parameter_names: Optional[Sequence[str]] = None,
                 tolerance: float = DEFAULT_TOLERANCE,
                 high_precision_tolerance: float = DEFAULT_HIGH_PRECISION_TOLERANCE,
                 relative_tolerance: float = 0.0,
                 connected: bool = True) -> Fixture:
    """
    Parse one fixture source.

    Parameters
    ----------
    properties : mapping
        Raw key/value pairs
    name : str
        Source identifier for diagnostics
    kind : str
        'discrete' or 'continuous'
    parameter_names : sequence of str, optional
        Names of the distribution parameters, used in error messages only
    tolerance, high_precision_tolerance, relative_tolerance : float
        Defaults when the source does not set them
    connected : bool
        Default support connectivity

    Returns
    -------
    Fixture

    Raises
    ------
    FixtureFormatError
        If a mandatory key is missing, a token fails to parse, or a
        points/values pair has mismatched length
    """
    if kind not in KINDS:
        raise ValueError(f"Unknown distribution kind: {kind}. Must be one of {KINDS}")

    reader = _SourceReader(name, properties)
    required, optional = schema_keys(kind)

    unknown = sorted(set(properties) - set(required) - set(optional))
    if unknown:
        warnings.warn(f"Fixture '{name}' has unrecognised keys: {unknown}")

    d = _density_prefix(kind)

    icdf_points, icdf_values = _inverse_pair(reader, 'icdf', kind)
    if kind == 'discrete' and icdf_points is None and icdf_values is None:
        icdf_points, icdf_values = _inverse_pair(reader, 'ipmf', kind)

    return Fixture(
        parameters=reader.parameters(parameter_names),
        mean=reader.double('mean', required=True),
        variance=reader.double('variance', required=True),
        kind=kind,
        name=name,
        lower=reader.bound('lower', -math.inf, kind),
        upper=reader.bound('upper', math.inf, kind),
        connected=reader.boolean('connected', connected),
        tolerance=reader.double('tolerance', tolerance),
        tolerance_hp=reader.double('tolerance.hp', high_precision_tolerance),
        relative_tolerance=reader.double('tolerance.relative', relative_tolerance),
        cdf_points=reader.points('cdf.points', kind),
        cdf_values=reader.doubles('cdf.values'),
        pmf_points=reader.points(f'{d}.points', kind),
        pmf_values=reader.doubles(f'{d}.values'),
        log_pmf_values=reader.doubles(f'log{d}.values'),
        sf_points=reader.points('sf.points', kind),
        sf_values=reader.doubles('sf.values'),
        cdf_hp_points=reader.points('cdf.hp.points', kind),
        cdf_hp_values=reader.doubles('cdf.hp.values'),
        sf_hp_points=reader.points('sf.hp.points', kind),
        sf_hp_values=reader.doubles('sf.hp.values'),
        icdf_points=icdf_points,
        icdf_values=icdf_values,
        disable_sample=reader.boolean('disable.sample', False),
        disable_pmf=reader.boolean(f'disable.{d}', False),
        disable_logpmf=reader.boolean(f'disable.log{d}', False),
        disable_cdf=reader.boolean('disable.cdf', False),
        disable_sf=reader.boolean('disable.sf', False),
        disable_cdf_inverse=reader.boolean('disable.cdf.inverse', False),
    )


def _normalise_sources(sources: Iterable[Source]) -> List[Tuple[str, Mapping[str, str]]]:
    normalised = []
    for i, source in enumerate(sources, start=1):
        if isinstance(source, tuple):
            name, properties = source
        else:
            name, properties = f"source {i}", source
        normalised.append((name, properties))
    return normalised


def load_fixtures(sources: Iterable[Source],
                  kind: str = 'discrete',
                  parameter_names: Optional[Sequence[str]] = None,
                  tolerance: float = DEFAULT_TOLERANCE,
                  high_precision_tolerance: float = DEFAULT_HIGH_PRECISION_TOLERANCE,
                  relative_tolerance: float = 0.0,
                  connected: bool = True,
                  verbose: bool = False) -> List[Fixture]:
    """
    Parse an ordered batch of fixture sources.

    Parameters
    ----------
    sources : iterable
        Mappings, or (name, mapping) pairs, in fixture order
    kind : str
        'discrete' or 'continuous'
    parameter_names : sequence of str, optional
        Names of the distribution parameters, used in error messages only
    tolerance, high_precision_tolerance, relative_tolerance : float
        Defaults for sources that do not set them
    connected : bool
        Default support connectivity
    verbose : bool
        Print one line per loaded fixture

    Returns
    -------
    list of Fixture
        Same order as ``sources``

    Raises
    ------
    FixtureFormatError
        If any source is malformed. No fixtures are returned in that case.
    """
    fixtures = []
    for name, properties in _normalise_sources(sources):
        fixture = load_fixture(
            properties, name=name, kind=kind,
            parameter_names=parameter_names,
            tolerance=tolerance,
            high_precision_tolerance=high_precision_tolerance,
            relative_tolerance=relative_tolerance,
            connected=connected,
        )
        if verbose:
            print(f"  Loaded {name}: parameters={fixture.parameters}")
        fixtures.append(fixture)
    return fixtures


class FixtureCache:
    """
    Memoizes fixture batches by family name.

    Entries are populated on first access and live until ``clear()`` or
    process exit. A failed load is not cached, so the error repeats on
    every access.
    """

    def __init__(self):
        self._entries: Dict[str, List[Fixture]] = {}

    def get(self, key: str, loader: Callable[[], List[Fixture]]) -> List[Fixture]:
        """
        Return the cached batch for ``key``, loading it if needed.

        Parameters
        ----------
        key : str
            Family identifier
        loader : callable
            Zero-argument function producing the batch
        """
        if key not in self._entries:
            self._entries[key] = list(loader())
        return self._entries[key]

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self, key: Optional[str] = None) -> None:
        """Drop one entry, or all entries when ``key`` is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)


__all__ = ['schema_keys', 'load_fixture', 'load_fixtures', 'FixtureCache']
