"""
Year-over-year growth rates
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd

from gtapssp.assertions import assert_has_columns
from gtapssp.exceptions import ConfigurationError


def growth_rate(
    table: pd.DataFrame,
    group_fields: Sequence[str],
    year_field: str = "year",
    value_field: str = "value",
    growth_rate_field: str = "growth_rate",
) -> pd.DataFrame:
    """
    Calculate the year-over-year growth rate within each group

    The growth rate is `100 * (value[t] - value[t - 1]) / value[t - 1]`,
    where `t - 1` is the previous year reported for the group.
    It is zero for the first year of each group
    and wherever the previous value is zero.

    Parameters
    ----------
    table
        Table for which to calculate growth rates

    group_fields
        Fields which define a group.

        Missing values are a group of their own.

    year_field
        Field which holds the year

    value_field
        Field which holds the value

    growth_rate_field
        Field in which to write the growth rate

    Returns
    -------
    :
        `table`, sorted by group and year, with the growth rate field added

    Raises
    ------
    ConfigurationError
        A group reports the same year more than once
        or `growth_rate_field` is already in `table`
    """
    group_fields = list(group_fields)
    assert_has_columns(table, [*group_fields, year_field, value_field])
    if growth_rate_field in table.columns:
        msg = f"{growth_rate_field!r} is already in the table"
        raise ConfigurationError(msg)

    duplicated = table.duplicated(subset=[*group_fields, year_field], keep=False)
    if duplicated.any():
        msg = (
            "Each group must report each year at most once. "
            f"Duplicates:\n{table.loc[duplicated]}"
        )
        raise ConfigurationError(msg)

    res = table.sort_values([*group_fields, year_field], kind="stable").reset_index(
        drop=True
    )
    values = res[value_field].astype(float)
    if group_fields:
        previous = values.groupby(
            [res[f] for f in group_fields], dropna=False, sort=False
        ).shift(1)
    else:
        previous = values.shift(1)

    defined = previous.notnull() & (previous != 0)
    with np.errstate(divide="ignore", invalid="ignore"):
        rates = 100 * (values - previous) / previous

    res[growth_rate_field] = rates.where(defined, 0.0)

    return res
