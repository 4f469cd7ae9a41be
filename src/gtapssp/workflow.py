"""
Workflow which turns the raw SSP data into GTAP inputs
"""

from __future__ import annotations

import logging
import multiprocessing
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import attr
import pandas as pd
from attrs import define, field

from gtapssp.aggregation import (
    SUPPORTED_ON_UNRESOLVED,
    aggregate,
    apply_region_override,
)
from gtapssp.assertions import assert_has_columns, assert_years_within_bounds
from gtapssp.completeness import assert_panel_is_complete
from gtapssp.exceptions import ConfigurationError
from gtapssp.grouping import GroupKey
from gtapssp.growth import growth_rate
from gtapssp.interpolation import (
    DEFAULT_SPLINE_METHOD,
    interpolate_beers,
    interpolate_spline,
)
from gtapssp.interpolation.spline import assert_spline_method_is_supported
from gtapssp.labels import (
    COHORT_DICTIONARY,
    EDUCATION_DICTIONARY,
    GENDER_DICTIONARY,
    RESCALE_FACTORS,
    VARIABLE_LABELS,
)
from gtapssp.output import (
    DEFAULT_HEADER_ARRAY_SPECS,
    HARWriter,
    HeaderArraySpec,
    assert_output_path_is_supported,
    write_output,
)
from gtapssp.reconciliation import (
    DEFAULT_BASELINE_SCENARIO,
    DEFAULT_REGION_FIELD,
    PanelSchema,
    TotalRowPolicy,
    combine_interpolated,
    label_panel,
    reconcile_panel,
)
from gtapssp.typing import LongDataFrame

logger = logging.getLogger(__name__)

DEFAULT_WORKFLOW_GROUP_FIELDS: tuple[str, ...] = (
    "model",
    "scenario",
    DEFAULT_REGION_FIELD,
    "variable",
    "unit",
)
"""
Fields which identify a timeseries once the raw data has been aggregated
"""


@define
class GTAPSSPWorkflow:
    """
    Workflow which aggregates, interpolates and reconciles the SSP data

    GDP projections are interpolated with cubic splines,
    population projections with Beers interpolation.
    """

    group_fields: tuple[str, ...] = field(
        default=DEFAULT_WORKFLOW_GROUP_FIELDS, converter=lambda v: tuple(v)
    )
    """
    Fields which identify a timeseries after aggregation
    """

    spline_models: tuple[str, ...] = field(
        default=("IIASA GDP 2023", "OECD ENV-Growth 2023"),
        converter=lambda v: tuple(v),
    )
    """
    Models whose data is interpolated with cubic splines
    """

    beers_models: tuple[str, ...] = field(
        default=("IIASA-WiC POP 2023",), converter=lambda v: tuple(v)
    )
    """
    Models whose data is interpolated with Beers interpolation
    """

    beers_excluded_variable_prefix: str | None = "Mean Years of Education"
    """
    Variables of `beers_models` starting with this are not interpolated

    Set to `None` to interpolate all of them.
    """

    baseline_scenario: str = DEFAULT_BASELINE_SCENARIO
    """
    Scenario which seeds all the other scenarios
    """

    spline_method: str = field(default=DEFAULT_SPLINE_METHOD)
    """
    Boundary condition of the cubic splines
    """

    on_unresolved: str = field(default="drop")
    """
    What to do with regions which can't be resolved during aggregation
    """

    model_field: str = "model"
    """
    Field which holds the model
    """

    variable_field: str = "variable"
    """
    Field which holds the variable
    """

    region_field: str = DEFAULT_REGION_FIELD
    """
    Field which holds the region code after aggregation

    An aggregation override writes its new codes into this field.
    """

    override_code_field: str = "reg_gtap_code"
    """
    Correspondence field in which an aggregation override's codes are looked up
    """

    year_field: str = "year"
    """
    Field which holds the year
    """

    value_field: str = "value"
    """
    Field which holds the value
    """

    education_dictionary: pd.DataFrame = field(default=EDUCATION_DICTIONARY)
    """
    Education level to education code
    """

    cohort_dictionary: pd.DataFrame = field(default=COHORT_DICTIONARY)
    """
    Cohort to age group code
    """

    gender_dictionary: pd.DataFrame = field(default=GENDER_DICTIONARY)
    """
    Gender (as in variable names) to gender code
    """

    variable_labels: Mapping[str, str] = field(default=VARIABLE_LABELS)
    """
    Variable to output label
    """

    rescale_factors: Mapping[str, float] = field(default=RESCALE_FACTORS)
    """
    Output label to rescaling factor
    """

    total_row_policy: TotalRowPolicy = field(factory=TotalRowPolicy)
    """
    Policy for dropping demographic totals in [run_growth_rates][(c).]
    """

    header_array_specs: tuple[HeaderArraySpec, ...] = field(
        default=DEFAULT_HEADER_ARRAY_SPECS, converter=lambda v: tuple(v)
    )
    """
    Arrays to write to header array files
    """

    run_checks: bool = True
    """
    If `True`, run checks on both input and output data

    If you are sure about your workflow,
    you can disable the checks to speed things up.
    """

    progress: bool = True
    """
    Should progress bars be shown for each operation?
    """

    n_processes: int | None = multiprocessing.cpu_count()
    """
    Number of processes to use for parallel processing.

    Set to `None` to process in serial.
    """

    @group_fields.validator
    def validate_group_fields(
        self, attribute: attr.Attribute[Any], value: tuple[str, ...]
    ) -> None:
        """
        Validate the group fields
        """
        # Raises if the fields are empty or duplicated
        GroupKey(fields=value, year_field=self.year_field, value_field=self.value_field)
        for required in [self.model_field, self.variable_field, self.region_field]:
            if required not in value:
                msg = f"{required!r} must be one of the group fields. Received: {value}"
                raise ConfigurationError(msg)

    @spline_method.validator
    def validate_spline_method(
        self, attribute: attr.Attribute[Any], value: str
    ) -> None:
        """
        Validate the spline method
        """
        assert_spline_method_is_supported(value)

    @on_unresolved.validator
    def validate_on_unresolved(
        self, attribute: attr.Attribute[Any], value: str
    ) -> None:
        """
        Validate the policy for unresolved regions
        """
        if value not in SUPPORTED_ON_UNRESOLVED:
            msg = (
                f"on_unresolved={value!r} is not supported. "
                f"{SUPPORTED_ON_UNRESOLVED=}"
            )
            raise ConfigurationError(msg)

    def get_correspondence(
        self,
        correspondence_table: pd.DataFrame,
        agg_override: pd.DataFrame | None = None,
    ) -> pd.DataFrame:
        """
        Get the correspondence table to use

        Parameters
        ----------
        correspondence_table
            Region correspondence

        agg_override
            Override of the correspondence's GTAP region codes,
            e.g. from [get_region_mapping][(p).gempack.].
            Codes are looked up in [override_code_field][(c).]
            and the new codes replace [region_field][(c).],
            so the aggregation sums over them.

        Returns
        -------
        :
            `correspondence_table`, with the override applied if supplied
        """
        if self.run_checks:
            assert_has_columns(
                correspondence_table, [self.region_field], "correspondence table"
            )

        if agg_override is None:
            return correspondence_table

        return apply_region_override(
            correspondence_table,
            agg_override,
            code_column=self.override_code_field,
            on_unresolved=self.on_unresolved,
            target_column=self.region_field,
        )

    def aggregate(
        self,
        raw_table: LongDataFrame,
        correspondence_table: pd.DataFrame,
    ) -> LongDataFrame:
        """
        Aggregate the raw data to the regions of the correspondence table

        Parameters
        ----------
        raw_table
            Raw data

        correspondence_table
            Region correspondence, see [get_correspondence][(c).]

        Returns
        -------
        :
            Aggregated data
        """
        if self.run_checks:
            assert_has_columns(raw_table, [self.year_field], "raw table")
            assert_years_within_bounds(raw_table[self.year_field].dropna().unique())

        logger.info("Aggregating %s raw records", raw_table.shape[0])
        return aggregate(
            raw_table,
            correspondence_table,
            group_fields=self.group_fields,
            year_field=self.year_field,
            value_field=self.value_field,
            on_unresolved=self.on_unresolved,
        )

    def interpolate(
        self, aggregated: LongDataFrame
    ) -> tuple[LongDataFrame, LongDataFrame]:
        """
        Interpolate the aggregated data onto annual steps

        Parameters
        ----------
        aggregated
            Aggregated data

        Returns
        -------
        :
            Spline output and Beers output
        """
        models = aggregated[self.model_field]

        spline_in = aggregated.loc[models.isin(self.spline_models)]
        beers_in = aggregated.loc[models.isin(self.beers_models)]
        if self.beers_excluded_variable_prefix is not None:
            beers_in = beers_in.loc[
                ~beers_in[self.variable_field]
                .astype(str)
                .str.startswith(self.beers_excluded_variable_prefix)
            ]

        chunk_levels = [
            f for f in (self.model_field, "scenario") if f in self.group_fields
        ]

        logger.info("Interpolating %s records with splines", spline_in.shape[0])
        spline_out = interpolate_spline(
            spline_in,
            group_fields=self.group_fields,
            year_field=self.year_field,
            value_field=self.value_field,
            method=self.spline_method,
            chunk_levels=chunk_levels,
            progress=self.progress,
            n_processes=self.n_processes,
        )

        logger.info("Interpolating %s records with Beers", beers_in.shape[0])
        beers_out = interpolate_beers(
            beers_in,
            group_fields=self.group_fields,
            year_field=self.year_field,
            value_field=self.value_field,
            fallback_method=self.spline_method,
            chunk_levels=chunk_levels,
            progress=self.progress,
            n_processes=self.n_processes,
        )

        return spline_out, beers_out

    def __call__(
        self,
        raw_table: LongDataFrame,
        correspondence_table: pd.DataFrame,
        agg_override: pd.DataFrame | None = None,
        out_file: Path | None = None,
        har_writer: HARWriter | None = None,
    ) -> pd.DataFrame:
        """
        Run the workflow

        Parameters
        ----------
        raw_table
            Raw data, in long format

        correspondence_table
            Region correspondence

        agg_override
            Override of the correspondence's region codes

        out_file
            If supplied, the output is also written to this `.csv` or `.har` file

        har_writer
            Writer of header array files. Required for `.har` output.

        Returns
        -------
        :
            Output panel
        """
        if out_file is not None:
            assert_output_path_is_supported(Path(out_file), har_writer=har_writer)

        correspondence = self.get_correspondence(correspondence_table, agg_override)
        aggregated = self.aggregate(raw_table, correspondence)
        spline_out, beers_out = self.interpolate(aggregated)

        logger.info("Reconciling the interpolated data")
        panel = reconcile_panel(
            spline_out,
            beers_out,
            correspondence_table=correspondence,
            baseline_scenario=self.baseline_scenario,
            region_field=self.region_field,
            year_field=self.year_field,
            value_field=self.value_field,
            variable_field=self.variable_field,
        )
        if self.run_checks:
            schema = PanelSchema.from_table(
                panel,
                region_field=self.region_field,
                year_field=self.year_field,
                value_field=self.value_field,
            )
            assert_panel_is_complete(
                panel,
                key_fields=schema.key_fields,
                grid_fields=[
                    schema.region_field,
                    schema.year_field,
                    schema.scenario_field,
                ],
                grid_values={
                    schema.region_field: correspondence[self.region_field]
                    .dropna()
                    .unique()
                },
            )

        res = label_panel(
            panel,
            region_field=self.region_field,
            education_dictionary=self.education_dictionary,
            cohort_dictionary=self.cohort_dictionary,
            gender_dictionary=self.gender_dictionary,
            variable_labels=self.variable_labels,
            rescale_factors=self.rescale_factors,
            year_field=self.year_field,
            value_field=self.value_field,
            model_field=self.model_field,
            variable_field=self.variable_field,
        )

        if out_file is not None:
            write_output(
                res,
                Path(out_file),
                har_writer=har_writer,
                header_array_specs=self.header_array_specs,
            )

        return res

    def run_growth_rates(
        self,
        raw_table: LongDataFrame,
        correspondence_table: pd.DataFrame,
        agg_override: pd.DataFrame | None = None,
        growth_rate_field: str = "growth_rate",
    ) -> LongDataFrame:
        """
        Run the growth-rate variant of the workflow

        Instead of reconciling the interpolated data,
        the totals are dropped (see [total_row_policy][(c).])
        and the year-over-year growth rate of each timeseries is calculated.

        Parameters
        ----------
        raw_table
            Raw data, in long format

        correspondence_table
            Region correspondence

        agg_override
            Override of the correspondence's region codes

        growth_rate_field
            Field in which to write the growth rate

        Returns
        -------
        :
            Interpolated data with growth rates
        """
        correspondence = self.get_correspondence(correspondence_table, agg_override)
        aggregated = self.aggregate(raw_table, correspondence)
        spline_out, beers_out = self.interpolate(aggregated)

        combined = self.total_row_policy(
            combine_interpolated(
                spline_out, beers_out, variable_field=self.variable_field
            )
        )

        logger.info("Calculating growth rates")
        return growth_rate(
            combined,
            group_fields=[
                c
                for c in combined.columns
                if c not in (self.year_field, self.value_field)
            ],
            year_field=self.year_field,
            value_field=self.value_field,
            growth_rate_field=growth_rate_field,
        )
