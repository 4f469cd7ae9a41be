"""
Useful assertions
"""

from __future__ import annotations

from collections.abc import Collection, Iterable

import numpy as np
import pandas as pd

from gtapssp.exceptions import ConfigurationError

YEAR_BOUNDS: tuple[int, int] = (1500, 3000)
"""
Bounds (inclusive) outside of which a year is treated as a data defect
"""


def assert_has_columns(
    table: pd.DataFrame, columns: Iterable[str], table_name: str = "table"
) -> None:
    """
    Assert that a table has the given columns

    Parameters
    ----------
    table
        Table to check

    columns
        Columns which must be present

    table_name
        Name of the table (used in the error message only)

    Raises
    ------
    ConfigurationError
        `table` is missing some of `columns`
    """
    missing = [c for c in columns if c not in table.columns]
    if missing:
        msg = (
            f"{table_name} is missing required columns: {missing}. "
            f"Available columns: {table.columns.tolist()}"
        )
        raise ConfigurationError(msg)


def assert_years_within_bounds(
    years: Collection[int], bounds: tuple[int, int] = YEAR_BOUNDS
) -> None:
    """
    Assert that all years are within the supported bounds

    Parameters
    ----------
    years
        Years to check

    bounds
        Lower and upper bound (both inclusive)

    Raises
    ------
    ConfigurationError
        Some years are outside of `bounds`
    """
    years_arr = np.asarray(list(years))
    out_of_bounds = years_arr[(years_arr < bounds[0]) | (years_arr > bounds[1])]
    if out_of_bounds.size > 0:
        msg = (
            f"Years must be within {bounds}. "
            f"Out of bounds: {sorted(set(out_of_bounds.tolist()))}"
        )
        raise ConfigurationError(msg)


def assert_no_missing_values(table: pd.DataFrame, column: str) -> None:
    """
    Assert that a column has no missing values

    Parameters
    ----------
    table
        Table to check

    column
        Column to check

    Raises
    ------
    AssertionError
        `column` has missing values
    """
    n_missing = table[column].isnull().sum()
    if n_missing:
        msg = f"{column} has {n_missing} missing value(s)"
        raise AssertionError(msg)
