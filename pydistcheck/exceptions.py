"""
Exception types for pydistcheck.

Four outcomes need to be told apart when a battery runs: a fixture batch
that cannot be loaded, a distribution that violates its contract, a check
that has nothing to test, and a distribution rejecting bad arguments.

Author: pydistcheck Development Team
License: MIT
"""

from typing import Any, Optional


class FixtureFormatError(ValueError):
    """
    Raised when a fixture source is malformed.

    Any single malformed source invalidates the whole batch it belongs to.

    Parameters
    ----------
    message : str
        Description of the problem
    source : str, optional
        Name of the offending fixture source
    key : str, optional
        Offending key within the source
    """

    def __init__(self, message: str, source: Optional[str] = None,
                 key: Optional[str] = None):
        self.source = source
        self.message = message
        self.key = key
        prefix = ""
        if source is not None:
            prefix = f"[{source}] "
        if key is not None:
            prefix += f"'{key}': "
        super().__init__(prefix + message)


class CheckFailure(AssertionError):
    """
    Raised by a battery check when a distribution breaks its contract.

    Attributes
    ----------
    expected, actual : Any
        Values that were compared (None when not applicable)
    point : Any
        Input that produced the mismatch (None when not applicable)
    """

    def __init__(self, message: str, expected: Any = None,
                 actual: Any = None, point: Any = None):
        self.expected = expected
        self.actual = actual
        self.point = point
        super().__init__(message)


class CheckSkipped(Exception):
    """
    Raised when a check has no applicable data.

    This is a soft precondition: the check is neither passed nor failed.
    """
    pass


class DistributionError(ValueError):
    """Raised by distribution adapters for invalid parameters or arguments."""
    pass


__all__ = ['FixtureFormatError', 'CheckFailure', 'CheckSkipped', 'DistributionError']
