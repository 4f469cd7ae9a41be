"""
Machinery shared by the interpolators
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Callable

import numpy as np
import pandas as pd
from pandas_openscm.parallelisation import ParallelOpConfig, apply_op_parallel_progress

from gtapssp.grouping import GroupKey, to_long, to_timeseries
from gtapssp.typing import LongDataFrame, NP_ARRAY_OF_FLOAT_OR_INT, TimeseriesDataFrame

RowInterpolator = Callable[
    ..., tuple[NP_ARRAY_OF_FLOAT_OR_INT, NP_ARRAY_OF_FLOAT_OR_INT]
]
"""
Callable which interpolates a single timeseries

It receives the observed (sorted, unique) years and values
plus the group (index value) of the timeseries as the `group` keyword argument
and returns the dense years and values.
"""

DEFAULT_CHUNK_LEVELS: tuple[str, ...] = ("model", "scenario")
"""
Levels used to split the data into chunks for parallel processing
"""


def interpolate_rows(
    timeseries: TimeseriesDataFrame,
    interpolate_row: RowInterpolator,
    **kwargs: Any,
) -> TimeseriesDataFrame:
    """
    Interpolate each row of a [TimeseriesDataFrame][(p).typing]

    Parameters
    ----------
    timeseries
        Timeseries to interpolate

    interpolate_row
        Function to use to interpolate each row

    **kwargs
        Passed to `interpolate_row`

    Returns
    -------
    :
        Interpolated timeseries.
        Years outside of each row's observed span are `NaN`.
    """
    if timeseries.empty:
        return timeseries.copy()

    res_l = []
    for group, row in timeseries.iterrows():
        observed = row.dropna()
        years, values = interpolate_row(
            observed.index.to_numpy(dtype=int),
            observed.to_numpy(dtype=float),
            group=group,
            **kwargs,
        )
        res_l.append(pd.Series(values, index=years))

    res = pd.DataFrame(res_l).sort_index(axis="columns")
    res.index = timeseries.index
    res.columns = res.columns.astype(int)
    res.columns.name = timeseries.columns.name

    return res


def interpolate_long(  # noqa: PLR0913
    table: LongDataFrame,
    key: GroupKey,
    interpolate_row: RowInterpolator,
    chunk_levels: Iterable[str] = DEFAULT_CHUNK_LEVELS,
    progress: bool = False,
    n_processes: int | None = None,
    desc: str = "Groups to interpolate",
    **kwargs: Any,
) -> LongDataFrame:
    """
    Interpolate a long table, one group at a time

    Parameters
    ----------
    table
        Table to interpolate

    key
        Key which defines the groups

    interpolate_row
        Function to use to interpolate each group

    chunk_levels
        Levels to use to split the data into chunks for parallel processing.

        Levels which are not group fields are ignored.
        If none of the levels are group fields,
        the first group field is used.

    progress
        Should a progress bar be shown?

    n_processes
        Number of processes to use for parallel processing.

        Set to `None` to process in serial.

    desc
        Description to show in the progress bar

    **kwargs
        Passed to `interpolate_row`

    Returns
    -------
    :
        Interpolated table
    """
    timeseries = to_timeseries(table, key)
    if timeseries.empty:
        return pd.DataFrame(columns=key.all_fields)

    chunk_levels_use = [lvl for lvl in chunk_levels if lvl in key.fields] or [
        key.fields[0]
    ]

    interpolated = pd.concat(
        apply_op_parallel_progress(
            func_to_call=interpolate_rows,
            iterable_input=(
                gdf for _, gdf in timeseries.groupby(chunk_levels_use, dropna=False)
            ),
            parallel_op_config=ParallelOpConfig.from_user_facing(
                progress=progress,
                max_workers=n_processes,
                progress_results_kwargs=dict(desc=desc),
            ),
            interpolate_row=interpolate_row,
            **kwargs,
        )
    )

    return to_long(interpolated, key)


def get_annual_years(years: NP_ARRAY_OF_FLOAT_OR_INT) -> NP_ARRAY_OF_FLOAT_OR_INT:
    """
    Get every year between the first and last of `years` (inclusive)
    """
    return np.arange(years.min(), years.max() + 1, dtype=int)
