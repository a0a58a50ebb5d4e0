"""
Distribution family definitions and registry.

A family ties together everything the battery needs to know about one kind
of distribution: how to build an instance from fixture parameters, which
accessors expose those parameters, which parameter sets must be rejected,
the default tolerances, and where its fixtures live.

Author: pydistcheck Development Team
License: MIT
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type, Union

from ._properties import discover_fixture_sources
from .data_structures import DEFAULT_HIGH_PRECISION_TOLERANCE, DEFAULT_TOLERANCE, KINDS, Fixture
from .distributions import DistributionBase
from .fixtures import FixtureCache, Source, load_fixtures


Accessor = Tuple[str, Callable[[Any], Any]]

# Shared by every family; keyed by family name
_FIXTURE_CACHE = FixtureCache()


@dataclass
class DistributionFamily:
    """
    A distribution family under test.

    Attributes
    ----------
    name : str
        Family identifier, also used in fixture file names
    kind : str
        'discrete' or 'continuous'
    factory : callable
        Builds a distribution from the fixture parameters (positional)
    parameter_accessors : sequence of (name, accessor)
        Fixed table of parameter accessors. ``accessor(dist)`` must return
        the parameter at the same position in the fixture
    invalid_parameters : sequence of tuple
        Parameter sets the factory must reject
    fixture_directory : str or Path, optional
        Directory holding ``test.<name>.<n>.properties`` files
    sources : sequence, optional
        In-memory fixture sources, used instead of ``fixture_directory``
    tolerance, high_precision_tolerance, relative_tolerance : float
        Defaults applied to fixtures that do not set them
    connected : bool
        Default support connectivity
    expected_error : type
        Exception type the factory and distribution raise for invalid input
    """
    name: str
    kind: str
    factory: Callable[..., DistributionBase]
    parameter_accessors: Sequence[Accessor] = ()
    invalid_parameters: Sequence[Tuple] = ()
    fixture_directory: Optional[Union[str, Path]] = None
    sources: Optional[Sequence[Source]] = None
    tolerance: float = DEFAULT_TOLERANCE
    high_precision_tolerance: float = DEFAULT_HIGH_PRECISION_TOLERANCE
    relative_tolerance: float = 0.0
    connected: bool = True
    expected_error: Type[Exception] = ValueError
    cache: FixtureCache = field(default=_FIXTURE_CACHE, repr=False, compare=False)

    def __post_init__(self):
        if self.kind not in KINDS:
            raise ValueError(f"Unknown distribution kind: {self.kind}. Must be one of {KINDS}")
        if self.fixture_directory is None and self.sources is None:
            raise ValueError(f"Family '{self.name}' needs a fixture_directory or sources")

    @property
    def parameter_names(self) -> List[str]:
        return [name for name, _ in self.parameter_accessors]

    def _sources(self) -> List[Source]:
        if self.sources is not None:
            return list(self.sources)
        return discover_fixture_sources(self.fixture_directory, self.name)

    def load_fixtures(self, verbose: bool = False) -> List[Fixture]:
        """
        Load the family's fixtures, bypassing the cache.

        Raises
        ------
        FixtureFormatError
            If any fixture source is malformed
        """
        if verbose:
            print(f"Loading fixtures for '{self.name}'")
        return load_fixtures(
            self._sources(),
            kind=self.kind,
            parameter_names=self.parameter_names or None,
            tolerance=self.tolerance,
            high_precision_tolerance=self.high_precision_tolerance,
            relative_tolerance=self.relative_tolerance,
            connected=self.connected,
            verbose=verbose,
        )

    @property
    def fixtures(self) -> List[Fixture]:
        """Fixtures loaded once per family name and cached."""
        return self.cache.get(self.name, self.load_fixtures)

    def make_distribution(self, parameters: Union[Fixture, Sequence[Any]]) -> DistributionBase:
        """
        Build a distribution instance.

        Parameters
        ----------
        parameters : Fixture or sequence
            Fixture, or the raw parameter values
        """
        if isinstance(parameters, Fixture):
            parameters = parameters.parameters
        return self.factory(*parameters)


_REGISTRY: Dict[str, DistributionFamily] = {}


def register_family(family: DistributionFamily, replace: bool = False) -> DistributionFamily:
    """
    Register a family so it can be looked up by name.

    Raises
    ------
    ValueError
        If the name is taken and ``replace`` is False
    """
    if family.name in _REGISTRY and not replace:
        raise ValueError(f"Family already registered: {family.name}")
    _REGISTRY[family.name] = family
    return family


def get_family(name: str) -> DistributionFamily:
    """
    Look up a registered family.

    Raises
    ------
    KeyError
        If no family has that name
    """
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(
            f"Unknown family: {name}. Available: {sorted(_REGISTRY)}"
        )


def list_families() -> List[str]:
    return sorted(_REGISTRY)


def unregister_family(name: str) -> None:
    _REGISTRY.pop(name, None)
    _FIXTURE_CACHE.clear(name)


__all__ = [
    'DistributionFamily', 'register_family', 'get_family',
    'list_families', 'unregister_family'
]
