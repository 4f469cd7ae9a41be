"""
Aggregation of raw data to model regions
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import pandas as pd

from gtapssp.assertions import assert_has_columns
from gtapssp.exceptions import ConfigurationError, UnresolvedKeyError
from gtapssp.typing import LongDataFrame

logger = logging.getLogger(__name__)

CORRESPONDENCE_COLUMNS: tuple[str, ...] = (
    "reg_gtap_number",
    "reg_iso3",
    "reg_gtap_code",
    "reg_gtap_name",
    "country_gtap_name",
    "cty_names",
)
"""
Columns of a region correspondence table

There is one row per region name used in the raw data.
"""

SUPPORTED_ON_UNRESOLVED: tuple[str, ...] = ("drop", "raise")


def handle_unresolved(
    unresolved: Iterable[object], name: str, lookup_name: str, on_unresolved: str
) -> None:
    """
    Handle values which could not be resolved in a lookup table

    Parameters
    ----------
    unresolved
        Values which could not be resolved

    name
        Name of the values

    lookup_name
        Name of the table they were looked up in

    on_unresolved
        `"drop"` logs a warning (the caller drops the values),
        `"raise"` raises an [UnresolvedKeyError][(p).exceptions.]

    Raises
    ------
    UnresolvedKeyError
        There are unresolved values and `on_unresolved` is `"raise"`
    """
    unresolved_l = sorted({str(v) for v in unresolved})
    if not unresolved_l:
        return

    if on_unresolved == "raise":
        raise UnresolvedKeyError(unresolved_l, name=name, lookup_name=lookup_name)

    logger.warning(
        "Dropping %d value(s) of %s which are not in %s: %s",
        len(unresolved_l),
        name,
        lookup_name,
        unresolved_l,
    )


def apply_region_override(
    correspondence: pd.DataFrame,
    override: pd.DataFrame,
    code_column: str = "reg_gtap_code",
    on_unresolved: str = "drop",
    target_column: str | None = None,
) -> pd.DataFrame:
    """
    Re-map the codes in a correspondence table

    Parameters
    ----------
    correspondence
        Correspondence table

    override
        Two-column table.
        The first column is the code in `correspondence`
        (matched case-insensitively),
        the second column is the code to use instead.
        See [get_region_mapping][(p).gempack.].

    code_column
        Column of `correspondence` in which the override's codes are looked up

    on_unresolved
        What to do with codes in `correspondence` that are not in `override`.
        `"drop"` drops them (and logs a warning),
        `"raise"` raises an [UnresolvedKeyError][(p).exceptions.]

    target_column
        Column of `correspondence` in which to write the new codes.
        If not supplied, `code_column` is overwritten.

    Returns
    -------
    :
        Correspondence table with `target_column` re-mapped
    """
    if target_column is None:
        target_column = code_column

    assert_has_columns(
        correspondence, [code_column, target_column], "correspondence table"
    )
    if override.shape[1] != 2:  # noqa: PLR2004
        msg = (
            "The override must have exactly two columns (source and target code). "
            f"Columns: {override.columns.tolist()}"
        )
        raise ConfigurationError(msg)

    mapping = pd.Series(
        override.iloc[:, 1].to_numpy(),
        index=override.iloc[:, 0].str.upper().to_numpy(),
    )
    if mapping.index.duplicated().any():
        msg = (
            "Source codes in the override must be unique. "
            f"Duplicates: {sorted(set(mapping.index[mapping.index.duplicated()]))}"
        )
        raise ConfigurationError(msg)

    new_codes = correspondence[code_column].str.upper().map(mapping)
    unresolved = new_codes.isnull()
    handle_unresolved(
        correspondence.loc[unresolved, code_column],
        name=code_column,
        lookup_name="the aggregation override",
        on_unresolved=on_unresolved,
    )

    res = correspondence.loc[~unresolved].copy()
    res[target_column] = new_codes[~unresolved]

    return res


def aggregate(  # noqa: PLR0913
    raw_table: LongDataFrame,
    correspondence_table: pd.DataFrame,
    group_fields: Iterable[str],
    agg_override: pd.DataFrame | None = None,
    region_field: str = "region",
    name_field: str = "cty_names",
    override_code_field: str = "reg_gtap_code",
    year_field: str = "year",
    value_field: str = "value",
    on_unresolved: str = "drop",
    override_target_field: str | None = None,
) -> LongDataFrame:
    """
    Aggregate raw data to the regions of a correspondence table

    The raw data's region names are matched to `name_field`
    in the correspondence table.
    Every entry of the correspondence table is kept through the join,
    then values are summed within the groups (and years).
    Finally, groups which could not be resolved are dropped
    (i.e. raw regions with no entry in the correspondence table
    and correspondence entries with no raw data).
    Unresolved keys are never aggregated into an 'unknown' bucket.

    Parameters
    ----------
    raw_table
        Raw data

    correspondence_table
        Correspondence between raw region names and model regions,
        see [CORRESPONDENCE_COLUMNS][(m).]

    group_fields
        Fields to group by.
        Each must be in either `raw_table` or `correspondence_table`.
        The first field is the primary key,
        rows where it is missing after the join are dropped.

    agg_override
        If supplied, a two-column table used to re-map
        `correspondence_table` before the join,
        see [apply_region_override][(m).]

    region_field
        Field in `raw_table` which holds the region name

    name_field
        Field in `correspondence_table` which holds the region name

    override_code_field
        Field in `correspondence_table` in which `agg_override`'s codes are looked up

    year_field
        Field which holds the year

    value_field
        Field which holds the value

    on_unresolved
        What to do with unresolved keys.
        `"drop"` drops them (and logs a warning),
        `"raise"` raises an [UnresolvedKeyError][(p).exceptions.]

    override_target_field
        Field in `correspondence_table` which receives the re-mapped codes.
        Must be one of `group_fields`.
        If not supplied, `override_code_field` is used.

    Returns
    -------
    :
        Aggregated data with columns `[*group_fields, year_field, value_field]`

    Raises
    ------
    ConfigurationError
        The inputs are missing required columns
        or `agg_override` is supplied
        but `override_target_field` is not one of `group_fields`

    UnresolvedKeyError
        There are unresolved keys and `on_unresolved` is `"raise"`
    """
    if on_unresolved not in SUPPORTED_ON_UNRESOLVED:
        msg = f"{on_unresolved=} is not supported. {SUPPORTED_ON_UNRESOLVED=}"
        raise ConfigurationError(msg)

    group_fields = list(group_fields)
    if not group_fields:
        msg = "At least one group field is required"
        raise ConfigurationError(msg)

    assert_has_columns(raw_table, [region_field, year_field, value_field], "raw table")
    assert_has_columns(correspondence_table, [name_field], "correspondence table")

    unknown_fields = [
        f
        for f in group_fields
        if f not in raw_table.columns and f not in correspondence_table.columns
    ]
    if unknown_fields:
        msg = (
            "Group fields must be in either the raw table or the correspondence table. "
            f"{unknown_fields=}"
        )
        raise ConfigurationError(msg)

    correspondence = correspondence_table
    if agg_override is not None:
        if override_target_field is None:
            override_target_field = override_code_field

        if override_target_field not in group_fields:
            msg = (
                f"The override re-maps {override_target_field!r}, "
                f"which is not one of the group fields. {group_fields=}"
            )
            raise ConfigurationError(msg)

        correspondence = apply_region_override(
            correspondence,
            agg_override,
            code_column=override_code_field,
            on_unresolved=on_unresolved,
            target_column=override_target_field,
        )

    correspondence_fields = [
        f
        for f in group_fields
        if f not in raw_table.columns and f in correspondence.columns
    ]
    correspondence = correspondence[
        list(dict.fromkeys([name_field, *correspondence_fields]))
    ]

    handle_unresolved(
        set(raw_table[region_field].dropna()).difference(correspondence[name_field]),
        name=region_field,
        lookup_name="the correspondence table",
        on_unresolved=on_unresolved,
    )

    raw_fields = [f for f in group_fields if f in raw_table.columns]
    raw = raw_table[
        list(dict.fromkeys([region_field, *raw_fields, year_field, value_field]))
    ]
    joined = raw.merge(
        correspondence, how="right", left_on=region_field, right_on=name_field
    )

    unmapped_codes = joined[correspondence_fields].isnull().any(axis="columns")
    handle_unresolved(
        joined.loc[unmapped_codes & joined[year_field].notnull(), name_field],
        name=name_field,
        lookup_name=f"the correspondence table's {correspondence_fields} columns",
        on_unresolved=on_unresolved,
    )
    joined = joined.loc[~unmapped_codes]

    res = (
        joined.groupby([*group_fields, year_field], dropna=False, sort=True)[
            value_field
        ]
        .sum()
        .reset_index()
        .dropna(subset=[group_fields[0], year_field])
    )
    res[year_field] = res[year_field].astype(int)

    return res.reset_index(drop=True)
