"""
Reconciliation of interpolated data into a complete panel

The steps are:

1. combine the spline and Beers output,
   splitting the composite demographic variables into their components
2. expand the baseline scenario to all other scenarios
   (without overwriting scenario-specific data)
3. complete the grid of keys x regions x years x scenarios,
   filling combinations with no data with zero
4. join the label dictionaries
5. relabel variables and rescale the variables which need it

The result is then renamed to the short codes used in the output.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Mapping

import pandas as pd
from attrs import define, field

from gtapssp.assertions import assert_has_columns, assert_no_missing_values
from gtapssp.exceptions import ConfigurationError
from gtapssp.index_manipulation import VARIABLE_COMPONENTS, split_variable
from gtapssp.joins import combine_with_precedence, keyed_merge
from gtapssp.labels import (
    COHORT_DICTIONARY,
    EDUCATION_DICTIONARY,
    GENDER_DICTIONARY,
    RESCALE_FACTORS,
    UNMAPPED_LABEL,
    VARIABLE_LABELS,
    join_labels,
)
from gtapssp.typing import LongDataFrame

logger = logging.getLogger(__name__)

DEFAULT_BASELINE_SCENARIO: str = "Historical Reference"
"""
Scenario which seeds all the other scenarios
"""

DEFAULT_REGION_FIELD: str = "reg_iso3"
"""
Field which holds the region code after aggregation
"""

OUTPUT_COLUMNS: Mapping[str, str] = {
    "model": "MOD",
    "variable": "VAR",
    "educ": "EDU",
    "scenario": "SCE",
    "region": "ISO",
    "gender": "GND",
    "age": "AGE",
    "year": "YRS",
    "value": "POP",
}
"""
Output column for each field

Apart from the demographic labels (`"educ"`, `"gender"` and `"age"`),
the keys stand for whichever fields hold that information,
e.g. `"region"` is whichever field holds the region code.
"""


@define(frozen=True)
class PanelSchema:
    """
    Explicit schema of a panel

    A record is identified by its key fields plus its region, year and scenario.
    """

    key_fields: tuple[str, ...] = field(converter=lambda v: tuple(v))
    """
    Fields, other than region, year and scenario, which identify a record
    """

    scenario_field: str = "scenario"
    """
    Field which holds the scenario
    """

    region_field: str = DEFAULT_REGION_FIELD
    """
    Field which holds the region code
    """

    year_field: str = "year"
    """
    Field which holds the year
    """

    value_field: str = "value"
    """
    Field which holds the value
    """

    @property
    def record_fields(self) -> list[str]:
        """
        Fields which together identify a record
        """
        return [
            *self.key_fields,
            self.region_field,
            self.year_field,
            self.scenario_field,
        ]

    @property
    def all_fields(self) -> list[str]:
        """
        All fields in the panel
        """
        return [*self.record_fields, self.value_field]

    @classmethod
    def from_table(
        cls,
        table: pd.DataFrame,
        scenario_field: str = "scenario",
        region_field: str = DEFAULT_REGION_FIELD,
        year_field: str = "year",
        value_field: str = "value",
    ) -> PanelSchema:
        """
        Initialise from a table

        Every field of `table` which isn't
        the scenario, region, year or value field is a key field.

        Parameters
        ----------
        table
            Table from which to derive the schema

        scenario_field
            Field which holds the scenario

        region_field
            Field which holds the region code

        year_field
            Field which holds the year

        value_field
            Field which holds the value

        Returns
        -------
        :
            Initialised schema
        """
        special = [scenario_field, region_field, year_field, value_field]
        assert_has_columns(table, special, "panel")

        return cls(
            key_fields=[c for c in table.columns if c not in special],
            scenario_field=scenario_field,
            region_field=region_field,
            year_field=year_field,
            value_field=value_field,
        )


@define
class TotalRowPolicy:
    """
    Policy for dropping demographic totals

    Records without an education level are totals over education levels.
    These are dropped, except for the baseline scenario
    and the youngest cohorts (who have no education level reported).
    Only records of `variable` are subject to the policy.
    """

    baseline_scenario: str = DEFAULT_BASELINE_SCENARIO
    """
    Scenario for which totals are kept
    """

    kept_cohorts: tuple[str, ...] = field(
        default=("Age 0-4", "Age 5-9", "Age 10-14"), converter=lambda v: tuple(v)
    )
    """
    Cohorts for which totals are kept
    """

    variable: str = "Population"
    """
    Variable to which the policy applies
    """

    variable_field: str = "variable"
    scenario_field: str = "scenario"
    cohort_field: str = "cohort"
    education_field: str = "education_level"

    def __call__(self, table: pd.DataFrame) -> pd.DataFrame:
        """
        Drop the totals from a table

        Parameters
        ----------
        table
            Table in which the composite variables have been split

        Returns
        -------
        :
            `table` without the totals the policy drops
        """
        assert_has_columns(
            table,
            [
                self.variable_field,
                self.scenario_field,
                self.cohort_field,
                self.education_field,
            ],
            "table",
        )
        keep = (
            (table[self.variable_field] != self.variable)
            | table[self.education_field].notnull()
            | (table[self.scenario_field] == self.baseline_scenario)
            | table[self.cohort_field].isin(self.kept_cohorts)
        )

        return table.loc[keep].reset_index(drop=True)


def combine_interpolated(
    spline_out: LongDataFrame,
    beers_out: LongDataFrame,
    variable_field: str = "variable",
    components: Iterable[str] = VARIABLE_COMPONENTS[1:],
) -> LongDataFrame:
    """
    Combine the output of the two interpolators

    The composite variables in `beers_out` are split into their components.
    Records of `spline_out` have no value for the components
    other than the variable itself.

    Parameters
    ----------
    spline_out
        Output of [interpolate_spline][(p).interpolation.]

    beers_out
        Output of [interpolate_beers][(p).interpolation.]

    variable_field
        Field which holds the (composite) variable.

        After splitting, it holds the first component.

    components
        Components, other than the first, into which to split the composite variables

    Returns
    -------
    :
        Combined table
    """
    into = [variable_field, *components]
    beers_split = split_variable(beers_out, variable_field=variable_field, into=into)
    only_in_spline = sorted(set(spline_out.columns).difference(beers_split.columns))
    if only_in_spline:
        msg = (
            "The spline and Beers output must have the same fields. "
            f"Only in the spline output: {only_in_spline}"
        )
        raise ConfigurationError(msg)

    # Components are labels, even where they are all missing
    component_dtypes = {c: object for c in into}
    to_combine = [
        t.astype(component_dtypes)
        for t in (beers_split, spline_out.reindex(columns=beers_split.columns))
        if not t.empty
    ]
    if not to_combine:
        return beers_split.reset_index(drop=True)

    return pd.concat(to_combine, ignore_index=True)


def expand_baseline_scenario(
    table: LongDataFrame,
    schema: PanelSchema,
    baseline_scenario: str = DEFAULT_BASELINE_SCENARIO,
) -> LongDataFrame:
    """
    Copy the baseline scenario's records to all other scenarios

    Records that a scenario already has are never overwritten.
    The baseline scenario itself is dropped from the result.

    Parameters
    ----------
    table
        Table to expand

    schema
        Schema of `table`

    baseline_scenario
        Scenario to copy

    Returns
    -------
    :
        Expanded table
    """
    scenarios = table[schema.scenario_field]
    baseline = table.loc[scenarios == baseline_scenario]
    others = table.loc[scenarios != baseline_scenario]

    other_scenarios = others[schema.scenario_field].dropna().unique().tolist()
    if baseline.empty:
        logger.warning("No records for baseline scenario %r", baseline_scenario)
        return others.reset_index(drop=True)

    if not other_scenarios:
        logger.warning(
            "Only the baseline scenario %r is present, nothing to expand it to",
            baseline_scenario,
        )
        expanded = baseline.iloc[:0]
    else:
        expanded = pd.concat(
            [baseline.assign(**{schema.scenario_field: s}) for s in other_scenarios],
            ignore_index=True,
        )

    return combine_with_precedence(
        others.reset_index(drop=True), expanded, on=schema.record_fields
    )


def complete_grid(
    table: LongDataFrame,
    schema: PanelSchema,
    regions: Collection[str],
    fill_value: float = 0.0,
) -> LongDataFrame:
    """
    Complete the grid of keys x regions x years x scenarios

    Parameters
    ----------
    table
        Table to complete.
        Each record must be unique.

    schema
        Schema of `table`

    regions
        Regions which must appear in the output.

        Records for other regions are dropped.

    fill_value
        Value to give combinations which are not in `table`

    Returns
    -------
    :
        Table with exactly one record
        for each combination of the distinct keys in `table`, `regions`,
        the distinct years in `table` and the distinct scenarios in `table`
    """
    keys = table[list(schema.key_fields)].drop_duplicates()
    years = sorted(table[schema.year_field].unique())
    grid = (
        keys.merge(
            pd.DataFrame({schema.region_field: pd.unique(pd.Series(list(regions)))}),
            how="cross",
        )
        .merge(
            pd.DataFrame({schema.year_field: years}),
            how="cross",
        )
        .merge(
            pd.DataFrame(
                {schema.scenario_field: table[schema.scenario_field].unique()}
            ),
            how="cross",
        )
    )

    res = keyed_merge(
        grid[schema.record_fields],
        table[schema.all_fields],
        on=schema.record_fields,
        how="left",
    )
    res[schema.value_field] = res[schema.value_field].fillna(fill_value)

    return res


def reconcile_panel(  # noqa: PLR0913
    spline_out: LongDataFrame,
    beers_out: LongDataFrame,
    correspondence_table: pd.DataFrame,
    baseline_scenario: str = DEFAULT_BASELINE_SCENARIO,
    scenario_field: str = "scenario",
    region_field: str = DEFAULT_REGION_FIELD,
    year_field: str = "year",
    value_field: str = "value",
    variable_field: str = "variable",
) -> LongDataFrame:
    """
    Combine, expand and complete the interpolated data

    These are steps 1 to 3 of [reconcile][(m).].

    Parameters
    ----------
    spline_out
        Output of [interpolate_spline][(p).interpolation.]

    beers_out
        Output of [interpolate_beers][(p).interpolation.]

    correspondence_table
        Correspondence table, used to get the complete list of regions

    baseline_scenario
        Scenario which seeds all the other scenarios

    scenario_field
        Field which holds the scenario

    region_field
        Field which holds the region code

    year_field
        Field which holds the year

    value_field
        Field which holds the value

    variable_field
        Field which holds the (composite) variable

    Returns
    -------
    :
        Complete panel, with the fields of the inputs
    """
    assert_has_columns(correspondence_table, [region_field], "correspondence table")

    combined = combine_interpolated(
        spline_out, beers_out, variable_field=variable_field
    )
    schema = PanelSchema.from_table(
        combined,
        scenario_field=scenario_field,
        region_field=region_field,
        year_field=year_field,
        value_field=value_field,
    )

    expanded = expand_baseline_scenario(
        combined, schema=schema, baseline_scenario=baseline_scenario
    )
    duplicated = expanded.duplicated(subset=schema.record_fields, keep=False)
    if duplicated.any():
        msg = (
            "Records must be unique before completing the grid. "
            f"Duplicates:\n{expanded.loc[duplicated]}"
        )
        raise ConfigurationError(msg)

    res = complete_grid(
        expanded,
        schema=schema,
        regions=correspondence_table[region_field].dropna().unique(),
    )
    assert_no_missing_values(res, value_field)

    return res


def apply_variable_labels(
    table: pd.DataFrame,
    variable_labels: Mapping[str, str] = VARIABLE_LABELS,
    rescale_factors: Mapping[str, float] = RESCALE_FACTORS,
    variable_field: str = "variable",
    value_field: str = "value",
) -> pd.DataFrame:
    """
    Relabel variables and rescale their values

    Parameters
    ----------
    table
        Table to update

    variable_labels
        Variable to label. Variables not in here keep their name.

    rescale_factors
        Label to the factor by which to multiply its values.
        Labels not in here are not rescaled.

    variable_field
        Field which holds the variable

    value_field
        Field which holds the value

    Returns
    -------
    :
        Updated copy of `table`
    """
    res = table.copy()
    res[variable_field] = (
        res[variable_field].map(variable_labels).fillna(res[variable_field])
    )
    factors = res[variable_field].map(rescale_factors).fillna(1.0).astype(float)
    res[value_field] = res[value_field] * factors

    return res


def to_output_schema(
    table: pd.DataFrame,
    scenario_field: str = "scenario",
    region_field: str = DEFAULT_REGION_FIELD,
    year_field: str = "year",
    value_field: str = "value",
    unmapped_label: str = UNMAPPED_LABEL,
    model_field: str = "model",
    variable_field: str = "variable",
) -> pd.DataFrame:
    """
    Rename to the output columns

    See [OUTPUT_COLUMNS][(m).].
    Years become strings like `"Y2020"`.

    Parameters
    ----------
    table
        Labelled table

    scenario_field
        Field which holds the scenario

    region_field
        Field which holds the region code

    year_field
        Field which holds the year

    value_field
        Field which holds the value

    unmapped_label
        Label for missing gender or age

    model_field
        Field which holds the model

    variable_field
        Field which holds the variable

    Returns
    -------
    :
        Table with only the output columns
    """
    fields = {
        "model": model_field,
        "variable": variable_field,
        "scenario": scenario_field,
        "region": region_field,
        "year": year_field,
        "value": value_field,
    }
    rename = {fields.get(k, k): v for k, v in OUTPUT_COLUMNS.items()}
    assert_has_columns(table, rename, "labelled table")

    res = table[list(rename)].rename(columns=rename)
    res["YRS"] = "Y" + res["YRS"].astype(int).astype(str)
    for column in ["EDU", "GND", "AGE"]:
        res[column] = res[column].fillna(unmapped_label)

    return res.reset_index(drop=True)


def label_panel(  # noqa: PLR0913
    panel: LongDataFrame,
    region_field: str = DEFAULT_REGION_FIELD,
    education_dictionary: pd.DataFrame = EDUCATION_DICTIONARY,
    cohort_dictionary: pd.DataFrame = COHORT_DICTIONARY,
    gender_dictionary: pd.DataFrame = GENDER_DICTIONARY,
    variable_labels: Mapping[str, str] = VARIABLE_LABELS,
    rescale_factors: Mapping[str, float] = RESCALE_FACTORS,
    unmapped_label: str = UNMAPPED_LABEL,
    scenario_field: str = "scenario",
    year_field: str = "year",
    value_field: str = "value",
    model_field: str = "model",
    variable_field: str = "variable",
) -> pd.DataFrame:
    """
    Label a complete panel and rename it to the output columns

    These are steps 4 and 5 of [reconcile][(m).].

    Parameters
    ----------
    panel
        Output of [reconcile_panel][(m).]

    region_field
        Field which holds the region code

    education_dictionary
        Education level to education code (`educ`)

    cohort_dictionary
        Cohort to age group code (`age`)

    gender_dictionary
        Gender (as in variable names) to gender code (`gender`)

    variable_labels
        Variable to label

    rescale_factors
        Label to rescaling factor

    unmapped_label
        Label for codes which aren't in the dictionaries

    scenario_field
        Field which holds the scenario

    year_field
        Field which holds the year

    value_field
        Field which holds the value

    model_field
        Field which holds the model

    variable_field
        Field which holds the variable

    Returns
    -------
    :
        Panel with the columns in [OUTPUT_COLUMNS][(m).]
    """
    labelled = panel
    for dictionary, code_field, label_field in (
        (education_dictionary, "education_level", "educ"),
        (cohort_dictionary, "cohort", "age"),
        (gender_dictionary, "gender_code", "gender"),
    ):
        labelled = join_labels(
            labelled,
            dictionary,
            code_field=code_field,
            label_fields=[label_field],
            unmapped_label=unmapped_label,
        )

    labelled = apply_variable_labels(
        labelled,
        variable_labels=variable_labels,
        rescale_factors=rescale_factors,
        variable_field=variable_field,
        value_field=value_field,
    )

    return to_output_schema(
        labelled,
        scenario_field=scenario_field,
        region_field=region_field,
        year_field=year_field,
        value_field=value_field,
        unmapped_label=unmapped_label,
        model_field=model_field,
        variable_field=variable_field,
    )


def reconcile(  # noqa: PLR0913
    spline_out: LongDataFrame,
    beers_out: LongDataFrame,
    correspondence_table: pd.DataFrame,
    baseline_scenario: str = DEFAULT_BASELINE_SCENARIO,
    region_field: str = DEFAULT_REGION_FIELD,
    education_dictionary: pd.DataFrame = EDUCATION_DICTIONARY,
    cohort_dictionary: pd.DataFrame = COHORT_DICTIONARY,
    gender_dictionary: pd.DataFrame = GENDER_DICTIONARY,
    variable_labels: Mapping[str, str] = VARIABLE_LABELS,
    rescale_factors: Mapping[str, float] = RESCALE_FACTORS,
    unmapped_label: str = UNMAPPED_LABEL,
    scenario_field: str = "scenario",
    year_field: str = "year",
    value_field: str = "value",
    model_field: str = "model",
    variable_field: str = "variable",
) -> pd.DataFrame:
    """
    Reconcile the interpolated data into the output panel

    See the module docstring for the steps.

    Parameters
    ----------
    spline_out
        Output of [interpolate_spline][(p).interpolation.]

    beers_out
        Output of [interpolate_beers][(p).interpolation.]

    correspondence_table
        Correspondence table, used to get the complete list of regions

    baseline_scenario
        Scenario which seeds all the other scenarios

    region_field
        Field which holds the region code

    education_dictionary
        Education level to education code

    cohort_dictionary
        Cohort to age group code

    gender_dictionary
        Gender (as in variable names) to gender code

    variable_labels
        Variable to label

    rescale_factors
        Label to rescaling factor

    unmapped_label
        Label for codes which aren't in the dictionaries

    scenario_field
        Field which holds the scenario

    year_field
        Field which holds the year

    value_field
        Field which holds the value

    model_field
        Field which holds the model

    variable_field
        Field which holds the (composite) variable

    Returns
    -------
    :
        Panel with the columns in [OUTPUT_COLUMNS][(m).]
    """
    panel = reconcile_panel(
        spline_out,
        beers_out,
        correspondence_table=correspondence_table,
        baseline_scenario=baseline_scenario,
        scenario_field=scenario_field,
        region_field=region_field,
        year_field=year_field,
        value_field=value_field,
        variable_field=variable_field,
    )

    return label_panel(
        panel,
        region_field=region_field,
        education_dictionary=education_dictionary,
        cohort_dictionary=cohort_dictionary,
        gender_dictionary=gender_dictionary,
        variable_labels=variable_labels,
        rescale_factors=rescale_factors,
        unmapped_label=unmapped_label,
        scenario_field=scenario_field,
        year_field=year_field,
        value_field=value_field,
        model_field=model_field,
        variable_field=variable_field,
    )
