"""
Keyed merges

Every merge declares its keys explicitly
and what happens when both sides have a record for the same keys.
We never join on 'all shared columns'.

Missing values in keys are matched with each other,
e.g. a record with no education level matches another with no education level.
"""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from gtapssp.assertions import assert_has_columns
from gtapssp.exceptions import ConfigurationError


def assert_no_overlapping_columns(
    left: pd.DataFrame, right: pd.DataFrame, on: Sequence[str]
) -> None:
    """
    Assert that two tables share no columns other than the keys

    Raises
    ------
    ConfigurationError
        The tables share non-key columns
    """
    overlapping = sorted(set(left.columns).intersection(right.columns).difference(on))
    if overlapping:
        msg = (
            f"Both sides of the merge have non-key columns {overlapping}. "
            f"Keys: {list(on)}. Drop or rename the columns first."
        )
        raise ConfigurationError(msg)


def keyed_merge(
    left: pd.DataFrame,
    right: pd.DataFrame,
    on: Sequence[str],
    how: str = "left",
    right_unique: bool = True,
) -> pd.DataFrame:
    """
    Merge two tables on declared keys

    Parameters
    ----------
    left
        Left table

    right
        Right table

    on
        Keys to merge on. Both tables must have all of them.

    how
        Type of merge, see [pandas.DataFrame.merge][]

    right_unique
        Must the keys be unique in `right`?

        If `True` (the default), each record of `left`
        matches at most one record of `right`
        so a left merge never adds records.

    Returns
    -------
    :
        Merged table

    Raises
    ------
    ConfigurationError
        The tables are missing keys, share non-key columns
        or `right` has duplicate keys when `right_unique` is `True`
    """
    on = list(on)
    assert_has_columns(left, on, "left side of the merge")
    assert_has_columns(right, on, "right side of the merge")
    assert_no_overlapping_columns(left, right, on)

    if right_unique and right.duplicated(subset=on).any():
        msg = (
            f"Keys {on} are not unique in the right side of the merge:\n"
            f"{right.loc[right.duplicated(subset=on, keep=False)]}"
        )
        raise ConfigurationError(msg)

    return left.merge(right, on=on, how=how)


def anti_join(
    left: pd.DataFrame, right: pd.DataFrame, on: Sequence[str]
) -> pd.DataFrame:
    """
    Get the records of `left` whose keys do not appear in `right`

    Parameters
    ----------
    left
        Table to filter

    right
        Table whose keys to exclude

    on
        Keys to compare

    Returns
    -------
    :
        Records of `left` whose keys are not in `right`
    """
    on = list(on)
    assert_has_columns(left, on, "left side of the anti-join")
    assert_has_columns(right, on, "right side of the anti-join")

    right_keys = right[on].drop_duplicates().assign(_in_right=True)
    flagged = left.merge(right_keys, on=on, how="left")

    return (
        flagged.loc[flagged["_in_right"].isnull()]
        .drop(columns="_in_right")
        .reset_index(drop=True)
    )


def combine_with_precedence(
    preferred: pd.DataFrame, fallback: pd.DataFrame, on: Sequence[str]
) -> pd.DataFrame:
    """
    Combine two tables, preferring `preferred` where both have the same keys

    Parameters
    ----------
    preferred
        Records which always win

    fallback
        Records which are only used where `preferred` has no record with the same keys

    on
        Keys which identify a record

    Returns
    -------
    :
        All of `preferred` plus the records of `fallback` not in `preferred`
    """
    to_combine = [
        t
        for t in (preferred, anti_join(fallback, preferred, on=on)[preferred.columns])
        if not t.empty
    ]
    if not to_combine:
        return preferred.reset_index(drop=True)

    return pd.concat(to_combine, ignore_index=True)
