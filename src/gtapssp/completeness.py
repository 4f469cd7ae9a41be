"""
Checks that a panel is a complete grid
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence

import pandas as pd

from gtapssp.assertions import assert_has_columns
from gtapssp.joins import anti_join


class NotCompleteError(ValueError):
    """
    Raised when a panel is not a complete grid
    """

    def __init__(
        self,
        missing: pd.DataFrame,
        duplicated: pd.DataFrame,
    ) -> None:
        """
        Initialise the error

        Parameters
        ----------
        missing
            Expected records which are missing

        duplicated
            Records which appear more than once
        """
        error_msg = (
            f"The panel is not complete. {missing.shape[0]} missing records, "
            f"{duplicated.shape[0]} duplicated records.\n"
            f"missing=\n{missing}\n"
            f"duplicated=\n{duplicated}"
        )
        super().__init__(error_msg)


def get_expected_grid(
    table: pd.DataFrame,
    key_fields: Sequence[str],
    grid_fields: Sequence[str],
    grid_values: Mapping[str, Collection[object]] | None = None,
) -> pd.DataFrame:
    """
    Get the expected grid

    Parameters
    ----------
    table
        Panel to check

    key_fields
        Fields whose distinct combinations in `table` must each be complete

    grid_fields
        Fields which span the grid

    grid_values
        Values each grid field must take.

        Grid fields not in here must take all the values they take in `table`.

    Returns
    -------
    :
        Every record the panel should have
    """
    if grid_values is None:
        grid_values = {}

    res = table[list(key_fields)].drop_duplicates()
    for grid_field in grid_fields:
        values = grid_values.get(grid_field, table[grid_field].unique())
        res = res.merge(
            pd.DataFrame({grid_field: pd.unique(pd.Series(list(values)))}),
            how="cross",
        )

    return res.reset_index(drop=True)


def assert_panel_is_complete(
    table: pd.DataFrame,
    key_fields: Sequence[str],
    grid_fields: Sequence[str],
    grid_values: Mapping[str, Collection[object]] | None = None,
) -> None:
    """
    Assert that a panel has exactly one record per point of its grid

    Parameters
    ----------
    table
        Panel to check

    key_fields
        Fields whose distinct combinations in `table` must each be complete

    grid_fields
        Fields which span the grid

    grid_values
        Values each grid field must take, see [get_expected_grid][(m).]

    Raises
    ------
    NotCompleteError
        `table` is missing records or has duplicate records
    """
    record_fields = [*key_fields, *grid_fields]
    assert_has_columns(table, record_fields, "panel")

    expected = get_expected_grid(
        table, key_fields=key_fields, grid_fields=grid_fields, grid_values=grid_values
    )
    missing = anti_join(expected, table, on=record_fields)
    duplicated = table.loc[table.duplicated(subset=record_fields, keep=False)]

    if not missing.empty or not duplicated.empty:
        raise NotCompleteError(missing=missing, duplicated=duplicated)
