"""
Manipulation of the metadata of tables

Here 'metadata' means the categorical fields
which identify each record (model, scenario, variable etc.).
"""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from gtapssp.assertions import assert_has_columns
from gtapssp.exceptions import ConfigurationError

VARIABLE_COMPONENTS: tuple[str, ...] = (
    "variable",
    "gender_code",
    "cohort",
    "education_level",
)
"""
Components of a composite demographic variable, in order

For example, `"Population|Male|Age 20-24|Primary Education"`
has all four components.
`"Population|Female"` has only the first two.
"""


def split_variable(
    table: pd.DataFrame,
    variable_field: str = "variable",
    into: Sequence[str] = VARIABLE_COMPONENTS,
    level_separator: str = "|",
) -> pd.DataFrame:
    """
    Split a composite variable field into its components

    Components are aligned from the start.
    If a variable has fewer components than `into`,
    the trailing components are missing (`NaN`).
    If it has more, the extra components are left in the last component.

    Parameters
    ----------
    table
        Table to split

    variable_field
        Field which holds the composite variable

    into
        Names of the components.

        The first name may be the same as `variable_field`,
        in which case the field is overwritten with its first component.

    level_separator
        Separator between the components

    Returns
    -------
    :
        Table with `variable_field` replaced by the components in `into`,
        in the position `variable_field` used to have

    Examples
    --------
    >>> table = pd.DataFrame(
    ...     [
    ...         ("Population|Male|Age 0-4|No Education", 2020, 1.0),
    ...         ("Population|Female", 2020, 2.0),
    ...         ("GDP|PPP", 2020, 3.0),
    ...     ],
    ...     columns=["variable", "year", "value"],
    ... )
    >>> split_variable(table)  # doctest: +NORMALIZE_WHITESPACE
         variable gender_code   cohort education_level  year  value
    0  Population        Male  Age 0-4    No Education  2020    1.0
    1  Population      Female      NaN             NaN  2020    2.0
    2         GDP         PPP      NaN             NaN  2020    3.0
    """
    into = list(into)
    if not into:
        msg = "At least one component name is required"
        raise ConfigurationError(msg)

    assert_has_columns(table, [variable_field])
    clashing = [c for c in into if c in table.columns and c != variable_field]
    if clashing:
        msg = f"Components would overwrite existing columns: {clashing}"
        raise ConfigurationError(msg)

    parts = (
        table[variable_field]
        .str.split(level_separator, n=len(into) - 1, expand=True)
        .reindex(columns=range(len(into)))
    )
    parts.columns = into
    parts = parts.where(parts.notnull())

    position = table.columns.get_loc(variable_field)
    res = table.drop(columns=variable_field)
    for i, component in enumerate(into):
        res.insert(position + i, component, parts[component])

    return res
