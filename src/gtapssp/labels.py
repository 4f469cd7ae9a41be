"""
Labels used in the output

These are static lookup tables.
The defaults here cover the SSP population and GDP projections.
Any of them can be replaced by passing a different table
to the functions that use them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import pandas as pd

from gtapssp.assertions import assert_has_columns
from gtapssp.joins import keyed_merge

logger = logging.getLogger(__name__)

UNMAPPED_LABEL: str = "TOTL"
"""
Label given to records whose code is not in a dictionary

In practice, these are totals (e.g. population of all ages).
"""

EDUCATION_DICTIONARY = pd.DataFrame(
    [
        ("Under 15", "UN15"),
        ("No Education", "NONE"),
        ("Incomplete Primary Education", "IPRI"),
        ("Primary Education", "PRIM"),
        ("Lower Secondary Education", "LSEC"),
        ("Upper Secondary Education", "USEC"),
        ("Post Secondary Education", "POST"),
    ],
    columns=["education_level", "educ"],
)
"""
Education level label to education code
"""

_COHORT_BOUNDS = [(start, start + 4) for start in range(0, 100, 5)]


def _get_broad_age_group(start: int, end: int) -> str:
    if end < 15:  # noqa: PLR2004
        return "PLT15"

    if start >= 65:  # noqa: PLR2004
        return "P65UP"

    return "P1564"


COHORT_DICTIONARY = pd.DataFrame(
    [
        (
            f"Age {start}-{end}",
            _get_broad_age_group(start, end),
            f"P{start:02d}{end:02d}",
        )
        for start, end in _COHORT_BOUNDS
    ]
    + [("Age 100+", "P65UP", "P100UP")],
    columns=["cohort", "age", "age_disagg"],
)
"""
Cohort label to broad age group code and disaggregated age group code
"""

GENDER_DICTIONARY = pd.DataFrame(
    [
        ("Male", "MALE"),
        ("Female", "FEML"),
    ],
    columns=["gender_code", "gender"],
)
"""
Gender label (as it appears in variable names) to gender code
"""

VARIABLE_LABELS: Mapping[str, str] = {
    "GDP|PPP": "GDP_PPP",
    "GDP|PPP [per capita]": "GDP_PER_CAPI",
}
"""
Variable to output label

Variables which are not in here keep their name.
"""

RESCALE_FACTORS: Mapping[str, float] = {
    "GDP_PPP": 1000.0,
}
"""
Output variable label to the factor by which to multiply its values

GDP is reported in billions, the output is in millions.
"""


def join_labels(
    table: pd.DataFrame,
    dictionary: pd.DataFrame,
    code_field: str,
    label_fields: list[str] | None = None,
    unmapped_label: str = UNMAPPED_LABEL,
) -> pd.DataFrame:
    """
    Join labels from a dictionary onto a table

    Parameters
    ----------
    table
        Table to label

    dictionary
        Dictionary. Must contain `code_field` and `label_fields`.

    code_field
        Field to join on

    label_fields
        Fields of `dictionary` to add to `table`.

        If not supplied, all the fields of `dictionary` except `code_field`.

    unmapped_label
        Label given to records whose code is missing or not in `dictionary`

    Returns
    -------
    :
        `table` with the label fields added
    """
    if label_fields is None:
        label_fields = [c for c in dictionary.columns if c != code_field]

    assert_has_columns(dictionary, [code_field, *label_fields], "label dictionary")

    # All-missing code fields are float, dictionary codes are objects
    res = keyed_merge(
        table.astype({code_field: object}),
        dictionary[[code_field, *label_fields]]
        .dropna(subset=[code_field])
        .astype({code_field: object}),
        on=[code_field],
        how="left",
    )

    unmapped = res[label_fields].isnull().any(axis="columns")
    unknown_codes = sorted(res.loc[unmapped, code_field].dropna().unique().tolist())
    if unknown_codes:
        logger.warning(
            "Codes of %s not in the dictionary, labelling them %r: %s",
            code_field,
            unmapped_label,
            unknown_codes,
        )

    res[label_fields] = res[label_fields].fillna(unmapped_label)

    return res
