"""
Grouping of records into independent timeseries

A [GroupKey][(m).] declares which fields identify a timeseries.
Interpolation and reconciliation act on each group independently.
"""

from __future__ import annotations

from typing import Any

import attr
import pandas as pd
from attrs import define, field

from gtapssp.exceptions import ConfigurationError
from gtapssp.typing import LongDataFrame, TimeseriesDataFrame

DEFAULT_GROUP_FIELDS: tuple[str, ...] = (
    "model",
    "scenario",
    "region",
    "variable",
    "unit",
)
"""
Default fields which identify a group

These match the fields of the raw data.
Once data has been aggregated to ISO or GTAP codes,
you will usually want to replace `"region"`
with the name of the code column (e.g. `"reg_iso3"`).
"""


@define(frozen=True)
class GroupKey:
    """
    Declaration of the fields which identify each timeseries in a table
    """

    fields: tuple[str, ...] = field(
        default=DEFAULT_GROUP_FIELDS, converter=lambda v: tuple(v)
    )
    """
    Fields which, together, identify a group (i.e. one timeseries)
    """

    year_field: str = "year"
    """
    Field which holds the year of each record
    """

    value_field: str = "value"
    """
    Field which holds the value of each record
    """

    @fields.validator
    def validate_fields(
        self, attribute: attr.Attribute[Any], value: tuple[str, ...]
    ) -> None:
        """
        Validate the fields
        """
        if not value:
            msg = "At least one group field is required"
            raise ConfigurationError(msg)

        duplicates = sorted({v for v in value if value.count(v) > 1})
        if duplicates:
            msg = f"Group fields must be unique. {duplicates=}"
            raise ConfigurationError(msg)

    def __attrs_post_init__(self) -> None:
        clash = [
            f for f in (self.year_field, self.value_field) if f in self.fields
        ]
        if clash:
            msg = (
                "The year and value fields cannot also be group fields. "
                f"{clash=} fields={list(self.fields)}"
            )
            raise ConfigurationError(msg)

    @property
    def all_fields(self) -> list[str]:
        """
        Group fields, then the year field, then the value field
        """
        return [*self.fields, self.year_field, self.value_field]

    def assert_table_has_fields(self, table: pd.DataFrame) -> None:
        """
        Assert that a table has all the fields required by this key

        Parameters
        ----------
        table
            Table to check

        Raises
        ------
        ConfigurationError
            `table` is missing some of the required fields
        """
        missing = [f for f in self.all_fields if f not in table.columns]
        if missing:
            msg = (
                f"Table is missing required columns: {missing}. "
                f"Available columns: {table.columns.tolist()}"
            )
            raise ConfigurationError(msg)


def to_timeseries(table: LongDataFrame, key: GroupKey) -> TimeseriesDataFrame:
    """
    Convert a long table into a [TimeseriesDataFrame][(p).typing]

    Columns which are not part of `key` are dropped.
    Records with a missing or non-numeric value are dropped.

    Parameters
    ----------
    table
        Table to convert

    key
        Key which defines the groups

    Returns
    -------
    :
        One row per group, one (integer) column per year

    Raises
    ------
    ConfigurationError
        `table` is missing fields or `key` does not identify unique timeseries
        (i.e. some group has more than one record for the same year)
    """
    key.assert_table_has_fields(table)

    tmp = table[key.all_fields].copy()
    tmp[key.value_field] = pd.to_numeric(tmp[key.value_field], errors="coerce")
    tmp = tmp.dropna(subset=[key.value_field, key.year_field])
    tmp[key.year_field] = tmp[key.year_field].astype(int)
    if tmp.empty:
        return pd.DataFrame(
            index=pd.MultiIndex.from_tuples([], names=list(key.fields)),
            columns=pd.Index([], dtype=int, name=key.year_field),
            dtype=float,
        )

    duplicated = tmp.duplicated(subset=[*key.fields, key.year_field], keep=False)
    if duplicated.any():
        msg = (
            "The group fields do not identify unique timeseries, "
            "there is more than one value for the same year. "
            "Aggregate the data first or add the missing group fields. "
            f"group fields={list(key.fields)}. "
            f"Duplicates:\n{tmp.loc[duplicated]}"
        )
        raise ConfigurationError(msg)

    res = (
        tmp.set_index([*key.fields, key.year_field])[key.value_field]
        .unstack(key.year_field)
        .sort_index(axis="columns")
    )
    res.columns = res.columns.astype(int)
    res.columns.name = key.year_field

    return res


def to_long(timeseries: TimeseriesDataFrame, key: GroupKey) -> LongDataFrame:
    """
    Convert a [TimeseriesDataFrame][(p).typing] back into a long table

    This is the inverse of [to_timeseries][(m).].
    Missing values (i.e. years outside each group's span) are dropped.

    Parameters
    ----------
    timeseries
        Timeseries to convert

    key
        Key which defines the groups

    Returns
    -------
    :
        Long table, sorted by group and year
    """
    res = (
        timeseries.rename_axis(columns=key.year_field)
        .melt(ignore_index=False, value_name=key.value_field)
        .dropna(subset=[key.value_field])
        .reset_index()
    )
    res[key.year_field] = res[key.year_field].astype(int)
    res = (
        res[key.all_fields]
        .sort_values([*key.fields, key.year_field])
        .reset_index(drop=True)
    )

    return res
