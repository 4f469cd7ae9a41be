"""
Cubic spline interpolation of independent timeseries
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import numpy as np
from scipy.interpolate import CubicSpline

from gtapssp.exceptions import ConfigurationError, InsufficientDataError
from gtapssp.grouping import GroupKey
from gtapssp.interpolation.common import (
    DEFAULT_CHUNK_LEVELS,
    get_annual_years,
    interpolate_long,
)
from gtapssp.typing import LongDataFrame, NP_ARRAY_OF_FLOAT_OR_INT

logger = logging.getLogger(__name__)

SUPPORTED_SPLINE_METHODS: tuple[str, ...] = ("not-a-knot", "natural")
"""
Supported boundary conditions for the spline

- `"not-a-knot"`: the third derivative is continuous at the second
  and second-to-last knots (close to the FMM end conditions)
- `"natural"`: the second derivative is zero at both ends
"""

DEFAULT_SPLINE_METHOD: str = "not-a-knot"
"""
Boundary condition used if none is specified
"""

MIN_SPLINE_POINTS: int = 2
"""
Minimum number of distinct years required to fit a spline
"""

SUPPORTED_ON_INSUFFICIENT: tuple[str, ...] = ("pass", "raise")


def assert_spline_method_is_supported(method: str) -> None:
    """
    Assert that a spline method is supported

    Raises
    ------
    ConfigurationError
        `method` is not supported
    """
    if method not in SUPPORTED_SPLINE_METHODS:
        msg = f"{method=} is not supported. {SUPPORTED_SPLINE_METHODS=}"
        raise ConfigurationError(msg)


def spline_interpolate_row(
    years: NP_ARRAY_OF_FLOAT_OR_INT,
    values: NP_ARRAY_OF_FLOAT_OR_INT,
    group: Any = None,
    method: str = DEFAULT_SPLINE_METHOD,
    on_insufficient: str = "pass",
) -> tuple[NP_ARRAY_OF_FLOAT_OR_INT, NP_ARRAY_OF_FLOAT_OR_INT]:
    """
    Interpolate a single timeseries with a cubic spline

    With only two points, the spline is a straight line.

    Parameters
    ----------
    years
        Observed years (sorted, unique)

    values
        Observed values

    group
        Group the timeseries belongs to (used for messages only)

    method
        Boundary condition to use, see [SUPPORTED_SPLINE_METHODS][(m).]

    on_insufficient
        What to do if there are too few points to fit a spline.

        `"pass"` returns the input unchanged,
        `"raise"` raises an [InsufficientDataError][(p).exceptions.].

    Returns
    -------
    :
        Annual years from the first to the last observed year
        and the interpolated values

    Raises
    ------
    InsufficientDataError
        There are too few points and `on_insufficient` is `"raise"`
    """
    if years.size < MIN_SPLINE_POINTS:
        if on_insufficient == "raise":
            raise InsufficientDataError(
                group=group, n_points=years.size, n_required=MIN_SPLINE_POINTS
            )

        logger.debug("Passing %s through unchanged, only %d year(s)", group, years.size)
        return years, values

    dense_years = get_annual_years(years)
    spline = CubicSpline(years.astype(float), values, bc_type=method)
    dense_values = spline(dense_years.astype(float))
    # Exactly the input, not just within floating point error
    dense_values[np.searchsorted(dense_years, years)] = values

    return dense_years, dense_values


def interpolate_spline(  # noqa: PLR0913
    table: LongDataFrame,
    group_fields: Iterable[str],
    year_field: str = "year",
    value_field: str = "value",
    method: str = DEFAULT_SPLINE_METHOD,
    on_insufficient: str = "pass",
    chunk_levels: Iterable[str] = DEFAULT_CHUNK_LEVELS,
    progress: bool = False,
    n_processes: int | None = None,
) -> LongDataFrame:
    """
    Interpolate each group's timeseries onto annual steps with a cubic spline

    Each group is fit independently.
    The output for each group covers every year
    from the group's first to last observed year (inclusive).
    Values at observed years are reproduced exactly.
    There is no extrapolation.

    Parameters
    ----------
    table
        Table to interpolate

    group_fields
        Fields which identify each timeseries

    year_field
        Field which holds the year

    value_field
        Field which holds the value.

        Missing or non-numeric values are ignored.

    method
        Boundary condition to use, see [SUPPORTED_SPLINE_METHODS][(m).]

    on_insufficient
        What to do with timeseries that have data for only one year.

        `"pass"` keeps them unchanged,
        `"raise"` raises an [InsufficientDataError][(p).exceptions.].

    chunk_levels
        Levels used to split the data for parallel processing

    progress
        Should a progress bar be shown?

    n_processes
        Number of processes to use. Set to `None` to process in serial.

    Returns
    -------
    :
        Interpolated table.
        Columns other than the group, year and value fields are dropped.

    Raises
    ------
    ConfigurationError
        The configuration is invalid or `group_fields` do not identify unique timeseries

    InsufficientDataError
        A timeseries has data for only one year and `on_insufficient` is `"raise"`
    """
    assert_spline_method_is_supported(method)
    if on_insufficient not in SUPPORTED_ON_INSUFFICIENT:
        msg = f"{on_insufficient=} is not supported. {SUPPORTED_ON_INSUFFICIENT=}"
        raise ConfigurationError(msg)

    key = GroupKey(fields=group_fields, year_field=year_field, value_field=value_field)

    return interpolate_long(
        table,
        key=key,
        interpolate_row=spline_interpolate_row,
        chunk_levels=chunk_levels,
        progress=progress,
        n_processes=n_processes,
        desc="Groups to interpolate with splines",
        method=method,
        on_insufficient=on_insufficient,
    )
