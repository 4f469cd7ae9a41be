"""
Exceptions raised throughout
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Any


class MissingOptionalDependencyError(ImportError):
    """
    Raised when an optional dependency is missing

    For example, plotting dependencies like matplotlib
    """

    def __init__(self, callable_name: str, requirement: str) -> None:
        """
        Initialise the error

        Parameters
        ----------
        callable_name
            The name of the callable that requires the dependency

        requirement
            The name of the requirement
        """
        error_msg = f"`{callable_name}` requires {requirement} to be installed"
        super().__init__(error_msg)


class ConfigurationError(ValueError):
    """
    Raised when the configuration of a run is invalid

    For example, grouping by columns that are not in the data
    or requesting an output format we can't write.
    Nothing is written when this is raised.
    """


class UnresolvedKeyError(KeyError):
    """
    Raised when keys cannot be resolved against a lookup table

    This is only raised if the caller asks for it.
    By default, unresolved keys are dropped (or given a sentinel) and logged.
    """

    def __init__(
        self,
        unresolved: Collection[Any],
        name: str,
        lookup_name: str,
    ) -> None:
        """
        Initialise the error

        Parameters
        ----------
        unresolved
            Values which could not be resolved

        name
            Name of the values (used for the error message only)

        lookup_name
            Name of the table they were looked up in
        """
        error_msg = (
            f"{len(unresolved)} value(s) of {name} could not be resolved "
            f"in {lookup_name}: {sorted(str(v) for v in unresolved)}"
        )
        super().__init__(error_msg)

    def __str__(self) -> str:
        # KeyError wraps its message in quotes otherwise
        return str(self.args[0])


class InsufficientDataError(ValueError):
    """
    Raised when a timeseries has too few points to be interpolated

    This is only raised if the caller asks for it.
    By default, such timeseries are passed through unchanged.
    """

    def __init__(self, group: Any, n_points: int, n_required: int) -> None:
        """
        Initialise the error

        Parameters
        ----------
        group
            Group (i.e. index values) of the offending timeseries

        n_points
            Number of distinct years with data

        n_required
            Number of distinct years required
        """
        error_msg = (
            f"Timeseries {group} has data for {n_points} distinct year(s), "
            f"at least {n_required} are required"
        )
        super().__init__(error_msg)


class ExternalIOError(OSError):
    """
    Raised when reading or writing data outside the package fails

    The original error is always available as `__cause__`.
    """
