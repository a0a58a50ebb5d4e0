"""
Battery runner for pydistcheck
==============================

Binds every check to the scenario stream that feeds it and runs the whole
battery against a distribution family.

The binding is an explicit table: each entry names the check, the
ScenarioGenerator method producing its scenarios, and the check function.
Adding a check means adding one row.

Two entry points:
- run_battery(): run everything and collect a BatteryReport
- iter_cases(): yield one named, independently runnable case per scenario,
  for use with ``pytest.mark.parametrize``

Author: pydistcheck Development Team
License: MIT
"""

import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Union

from . import checks as battery
from .data_structures import BatteryConfig, BatteryReport, CheckOutcome
from .exceptions import CheckFailure, CheckSkipped
from .families import DistributionFamily, get_family
from .scenarios import Scenario, ScenarioGenerator


@dataclass(frozen=True)
class RegisteredCheck:
    """
    One row of the check table.

    Attributes
    ----------
    name : str
        Check name used in reports and test ids
    stream : str
        Name of the ScenarioGenerator method producing the scenarios
    function : callable
        ``function(scenario, config)``; raises CheckFailure or CheckSkipped
    """
    name: str
    stream: str
    function: Callable[[Scenario, BatteryConfig], None]


CHECKS: List[RegisteredCheck] = [
    RegisteredCheck('probability', 'probability', battery.check_probability),
    RegisteredCheck('log_probability', 'log_probability', battery.check_log_probability),
    RegisteredCheck('cumulative_probability', 'cumulative_probability',
                    battery.check_cumulative_probability),
    RegisteredCheck('survival_probability', 'survival_probability',
                    battery.check_survival_probability),
    RegisteredCheck('cumulative_probability_high_precision',
                    'cumulative_probability_high_precision',
                    battery.check_cumulative_probability_high_precision),
    RegisteredCheck('survival_probability_high_precision',
                    'survival_probability_high_precision',
                    battery.check_survival_probability_high_precision),
    RegisteredCheck('inverse_cumulative_probability', 'inverse_cumulative_probability',
                    battery.check_inverse_cumulative_probability),
    RegisteredCheck('cumulative_probability_inverse_mapping',
                    'cumulative_probability_inverse_mapping',
                    battery.check_cumulative_probability_inverse_mapping),
    RegisteredCheck('survival_and_cumulative_probability_complement',
                    'survival_and_cumulative_probability_complement',
                    battery.check_survival_and_cumulative_probability_complement),
    RegisteredCheck('consistency', 'consistency', battery.check_consistency),
    RegisteredCheck('outside_support', 'outside_support', battery.check_outside_support),
    RegisteredCheck('invalid_probabilities', 'invalid_probabilities',
                    battery.check_invalid_probabilities),
    RegisteredCheck('sampling', 'sampling', battery.check_sampling),
    RegisteredCheck('probability_sums', 'probability_sums', battery.check_probability_sums),
    RegisteredCheck('support', 'support', battery.check_support),
    RegisteredCheck('moments', 'moments', battery.check_moments),
    RegisteredCheck('parameter_accessors', 'parameter_accessors',
                    battery.check_parameter_accessors),
    RegisteredCheck('invalid_parameters', 'invalid_parameters',
                    battery.check_invalid_parameters),
]


def list_checks() -> List[str]:
    """Names of all registered checks, in run order."""
    return [check.name for check in CHECKS]


def _select(names: Optional[Iterable[str]]) -> List[RegisteredCheck]:
    if names is None:
        return list(CHECKS)
    by_name = {check.name: check for check in CHECKS}
    selected = []
    for name in names:
        if name not in by_name:
            raise ValueError(f"Unknown check: {name}. Available: {list_checks()}")
        selected.append(by_name[name])
    return selected


def _resolve(family: Union[str, DistributionFamily]) -> DistributionFamily:
    if isinstance(family, str):
        return get_family(family)
    return family


def _invoke(check: RegisteredCheck, scenario: Scenario, config: BatteryConfig) -> None:
    if scenario.error is not None:
        raise scenario.error
    check.function(scenario, config)


def _run_scenario(check: RegisteredCheck, scenario: Scenario,
                  config: BatteryConfig) -> CheckOutcome:
    fixture = scenario.fixture_name or str(scenario.parameters or '')
    try:
        _invoke(check, scenario, config)
    except CheckSkipped as e:
        return CheckOutcome(check.name, fixture, 'skipped', str(e))
    except CheckFailure as e:
        return CheckOutcome(check.name, fixture, 'failed', str(e))
    except Exception as e:
        return CheckOutcome(check.name, fixture, 'error', f"{type(e).__name__}: {e}")
    return CheckOutcome(check.name, fixture, 'passed')


def run_battery(family: Union[str, DistributionFamily],
                config: Optional[BatteryConfig] = None,
                checks: Optional[Iterable[str]] = None,
                verbose: Optional[bool] = None) -> BatteryReport:
    """
    Run the battery against a distribution family.

    Parameters
    ----------
    family : str or DistributionFamily
        Family, or the name of a registered family
    config : BatteryConfig, optional
        Battery settings (defaults used if None)
    checks : iterable of str, optional
        Subset of check names to run (all if None)
    verbose : bool, optional
        Print progress; overrides ``config.verbose`` when given

    Returns
    -------
    BatteryReport
        One outcome per scenario, plus one 'skipped' outcome for each check
        that had no scenarios

    Raises
    ------
    FixtureFormatError
        If the family's fixtures cannot be loaded
    KeyError
        If ``family`` is an unknown name
    ValueError
        If ``checks`` names an unknown check
    """
    family = _resolve(family)
    config = config or BatteryConfig()
    verbose = config.verbose if verbose is None else verbose
    selected = _select(checks)

    start_time = time.time()
    generator = ScenarioGenerator(family, sum_tolerance=config.sum_tolerance)

    if verbose:
        print(f"Distribution battery: {family.name} ({family.kind})")
        print("=" * 60)
        print(f"Fixtures: {len(generator.fixtures)}, checks: {len(selected)}")

    report = BatteryReport(family=family.name)
    for check in selected:
        before = len(report.outcomes)
        try:
            for scenario in getattr(generator, check.stream)():
                report.outcomes.append(_run_scenario(check, scenario, config))
        except CheckSkipped as e:
            report.outcomes.append(CheckOutcome(check.name, '', 'skipped', str(e)))
        except Exception as e:
            # The stream itself broke; per-fixture factory errors arrive
            # on their scenarios instead
            report.outcomes.append(
                CheckOutcome(check.name, '', 'error', f"{type(e).__name__}: {e}"))

        if verbose:
            statuses = [o.status for o in report.outcomes[before:]]
            if any(s in ('failed', 'error') for s in statuses):
                mark = "FAIL"
            elif statuses and all(s == 'skipped' for s in statuses):
                mark = "skip"
            else:
                mark = "ok"
            print(f"  {check.name:<50} {mark}")

    report.computation_time = time.time() - start_time

    if verbose:
        print("=" * 60)
        print(report.summary())

    return report


@dataclass
class Case:
    """
    One independently runnable battery case.

    Calling ``run()`` returns on success and raises CheckFailure or
    CheckSkipped otherwise.
    """
    check: str
    fixture: str
    run: Callable[[], None]

    @property
    def id(self) -> str:
        return f"{self.check}[{self.fixture}]" if self.fixture else self.check


def _skipped(message: str) -> Callable[[], None]:
    def run():
        raise CheckSkipped(message)
    return run


def _bound(check: RegisteredCheck, scenario: Scenario,
           config: BatteryConfig) -> Callable[[], None]:
    def run():
        _invoke(check, scenario, config)
    return run


def iter_cases(family: Union[str, DistributionFamily],
               config: Optional[BatteryConfig] = None,
               checks: Optional[Iterable[str]] = None) -> Iterator[Case]:
    """
    Yield one case per scenario of every selected check.

    A check with no scenarios yields a single case that raises CheckSkipped,
    so every check shows up in a parametrized test run.

    Parameters
    ----------
    family : str or DistributionFamily
        Family, or the name of a registered family
    config : BatteryConfig, optional
        Battery settings
    checks : iterable of str, optional
        Subset of check names

    Yields
    ------
    Case
    """
    family = _resolve(family)
    config = config or BatteryConfig()
    generator = ScenarioGenerator(family, sum_tolerance=config.sum_tolerance)
    for check in _select(checks):
        try:
            for i, scenario in enumerate(getattr(generator, check.stream)()):
                fixture = scenario.fixture_name or f"invalid.{i + 1}"
                yield Case(check.name, fixture, _bound(check, scenario, config))
        except CheckSkipped as e:
            yield Case(check.name, '', _skipped(str(e)))


__all__ = ['RegisteredCheck', 'CHECKS', 'Case', 'list_checks', 'run_battery', 'iter_cases']
