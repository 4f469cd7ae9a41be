"""
Beers interpolation of demographic timeseries

Beers' formulas were designed for actuarial and demographic work,
to subdivide five-year steps into single years smoothly.
We use them along the time axis,
to turn five-yearly (or ten-yearly etc.) population snapshots
into annual population.

We use the ordinary (rather than modified) six-term formula.
The ordinary formula passes through the observed values,
the modified formula smooths them, which we don't want here.

The coefficients for a position `x = j / h` within a panel of width `h`
are applied to the six snapshots around the panel
(two before the panel's start, four from its start onwards).
They are the fifth-degree Lagrange weights
plus a multiple of the fifth-difference operator.
As a result, polynomials up to degree four are reproduced exactly.
The multiples are chosen, following Beers,
so that the fifth differences of the interpolated series are as small as possible.

In the first two and last two panels, the six-term window does not fit
within the data so we interpolate linearly instead.

Groups with fewer than six snapshots,
or whose snapshots are not evenly spaced,
are interpolated with a spline instead
(see [interpolate_spline][(p).interpolation.spline.]).

The interpolation is linear in the snapshots
and the same coefficients are used for every group.
Hence, if cohorts add up to their total at the snapshots,
the interpolated cohorts also add up to the interpolated total
(as long as the cohorts and total have the same snapshot years).
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Iterable
from typing import Any

import numpy as np

from gtapssp.grouping import GroupKey
from gtapssp.interpolation.common import (
    DEFAULT_CHUNK_LEVELS,
    interpolate_long,
)
from gtapssp.interpolation.spline import (
    DEFAULT_SPLINE_METHOD,
    assert_spline_method_is_supported,
    spline_interpolate_row,
)
from gtapssp.typing import LongDataFrame, NP_ARRAY_OF_FLOAT_OR_INT

logger = logging.getLogger(__name__)

BEERS_MIN_SNAPSHOTS: int = 6
"""
Minimum number of snapshots required for Beers interpolation
"""

STENCIL_OFFSETS: tuple[int, ...] = (-2, -1, 0, 1, 2, 3)
"""
Offsets, relative to the start of the panel, of the snapshots used for each panel
"""

FIFTH_DIFFERENCE_WEIGHTS: tuple[float, ...] = (-1.0, 5.0, -10.0, 10.0, -5.0, 1.0)
"""
Weights which give the fifth difference of six consecutive values
"""


def get_lagrange_weights(x: float, nodes: Iterable[int]) -> NP_ARRAY_OF_FLOAT_OR_INT:
    """
    Get the weights of Lagrange polynomial interpolation

    Parameters
    ----------
    x
        Position at which to interpolate

    nodes
        Positions of the known values

    Returns
    -------
    :
        Weights to apply to the known values to get the value at `x`
    """
    nodes_arr = np.asarray(list(nodes), dtype=float)
    res = np.ones_like(nodes_arr)
    for i, node in enumerate(nodes_arr):
        others = np.delete(nodes_arr, i)
        res[i] = np.prod((x - others) / (node - others))

    return res


@functools.cache
def get_beers_coefficients(step: int) -> NP_ARRAY_OF_FLOAT_OR_INT:
    """
    Get Beers ordinary interpolation coefficients for a given panel width

    Parameters
    ----------
    step
        Number of years between snapshots (i.e. the panel width)

    Returns
    -------
    :
        Array of shape `(step, 6)`.
        Row `j` gives the weights to apply to the snapshots
        at [STENCIL_OFFSETS][(m).] to get the value `j` years after the panel start.
        Row 0 simply picks the snapshot at the start of the panel.

    Raises
    ------
    ValueError
        `step` is less than 2
    """
    if step < 2:  # noqa: PLR2004
        msg = f"step must be at least 2. Received: {step}"
        raise ValueError(msg)

    fifth_difference = np.array(FIFTH_DIFFERENCE_WEIGHTS)
    n_stencil = len(STENCIL_OFFSETS)

    lagrange = np.stack(
        [get_lagrange_weights(j / step, STENCIL_OFFSETS) for j in range(step)]
    )
    lagrange[0] = np.eye(n_stencil)[STENCIL_OFFSETS.index(0)]

    # Express the fifth differences of the interpolated annual series
    # in terms of the snapshots.
    # Annual value t = step * k + j uses snapshots k - 2 to k + 3.
    # Snapshot index -2 is stored in column 0.
    n_snapshots = (step + 4) // step + n_stencil
    fixed = np.zeros((step, n_snapshots))
    free = np.zeros((step, n_snapshots, step - 1))
    for t in range(step):
        for m, weight in enumerate(fifth_difference):
            k, j = divmod(t + m, step)
            snapshots = slice(k, k + n_stencil)
            fixed[t, snapshots] += weight * lagrange[j]
            if j > 0:
                free[t, snapshots, j - 1] += weight * fifth_difference

    multiples, *_ = np.linalg.lstsq(
        free.reshape(-1, step - 1), -fixed.reshape(-1), rcond=None
    )

    res = lagrange.copy()
    res[1:] += multiples[:, np.newaxis] * fifth_difference
    res.flags.writeable = False

    return res


def get_constant_step(years: NP_ARRAY_OF_FLOAT_OR_INT) -> int | None:
    """
    Get the step between years, if it is constant

    Parameters
    ----------
    years
        Years (sorted, unique, at least two)

    Returns
    -------
    :
        Step between years or `None` if the step is not constant
    """
    steps = np.unique(np.diff(years))
    if steps.size != 1:
        return None

    return int(steps[0])


def beers_interpolate_row(
    years: NP_ARRAY_OF_FLOAT_OR_INT,
    values: NP_ARRAY_OF_FLOAT_OR_INT,
    group: Any = None,
    fallback_method: str = DEFAULT_SPLINE_METHOD,
) -> tuple[NP_ARRAY_OF_FLOAT_OR_INT, NP_ARRAY_OF_FLOAT_OR_INT]:
    """
    Interpolate a single timeseries with Beers ordinary interpolation

    Parameters
    ----------
    years
        Observed years (sorted, unique)

    values
        Observed values

    group
        Group the timeseries belongs to (used for messages only)

    fallback_method
        Spline method to use if the timeseries can't be Beers-interpolated

    Returns
    -------
    :
        Annual years from the first to the last observed year
        and the interpolated values
    """
    step = get_constant_step(years) if years.size > 1 else None

    if step == 1:
        # Already annual
        return years, values

    if years.size < BEERS_MIN_SNAPSHOTS or step is None:
        logger.debug(
            "Falling back to spline interpolation for %s "
            "(%d snapshot(s), step between snapshots=%s)",
            group,
            years.size,
            step,
        )
        return spline_interpolate_row(
            years, values, group=group, method=fallback_method
        )

    coefficients = get_beers_coefficients(step)
    fractions = np.arange(step) / step
    n_panels = years.size - 1
    first_full_panel = -STENCIL_OFFSETS[0]
    last_full_panel = years.size - STENCIL_OFFSETS[-1] - 1

    panels_l = []
    for panel in range(n_panels):
        if first_full_panel <= panel <= last_full_panel:
            start = panel + STENCIL_OFFSETS[0]
            window = values[start : start + len(STENCIL_OFFSETS)]
            panels_l.append(coefficients @ window)
        else:
            panels_l.append(
                values[panel] + (values[panel + 1] - values[panel]) * fractions
            )

    panels_l.append(values[-1:])

    dense_years = np.arange(years[0], years[-1] + 1, dtype=int)
    dense_values = np.concatenate(panels_l)

    return dense_years, dense_values


def interpolate_beers(  # noqa: PLR0913
    table: LongDataFrame,
    group_fields: Iterable[str],
    year_field: str = "year",
    value_field: str = "value",
    fallback_method: str = DEFAULT_SPLINE_METHOD,
    chunk_levels: Iterable[str] = DEFAULT_CHUNK_LEVELS,
    progress: bool = False,
    n_processes: int | None = None,
) -> LongDataFrame:
    """
    Interpolate each group's timeseries onto annual steps with Beers interpolation

    See the module docstring for details of the method
    and when it falls back to spline interpolation.

    Parameters
    ----------
    table
        Table to interpolate

    group_fields
        Fields which identify each timeseries (e.g. each cohort)

    year_field
        Field which holds the year

    value_field
        Field which holds the value.

        Missing or non-numeric values are ignored.

    fallback_method
        Spline method to use for groups that can't be Beers-interpolated

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
    """
    assert_spline_method_is_supported(fallback_method)

    key = GroupKey(fields=group_fields, year_field=year_field, value_field=value_field)

    return interpolate_long(
        table,
        key=key,
        interpolate_row=beers_interpolate_row,
        chunk_levels=chunk_levels,
        progress=progress,
        n_processes=n_processes,
        desc="Groups to interpolate with Beers",
        fallback_method=fallback_method,
    )
