"""
Code to support our tests

This is here, rather than in our `tests` directory
because of the issues that come
when you turn your tests into a package using `__init__.py` files
(for details, see https://docs.pytest.org/en/7.1.x/explanation/goodpractices.html#choosing-an-import-mode).

The data generated here only looks like the SSP data.
The values are smooth polynomials in time, not real projections.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterable

import numpy as np
import pandas as pd
from pandas_openscm.grouping import groupby_except

from gtapssp.aggregation import CORRESPONDENCE_COLUMNS
from gtapssp.exceptions import MissingOptionalDependencyError
from gtapssp.reconciliation import DEFAULT_BASELINE_SCENARIO

POPULATION_MODEL = "IIASA-WiC POP 2023"
IIASA_GDP_MODEL = "IIASA GDP 2023"
OECD_GDP_MODEL = "OECD ENV-Growth 2023"

SSP_LIKE_SCENARIOS: tuple[str, ...] = ("SSP1", "SSP2")

HISTORICAL_YEARS: tuple[int, ...] = tuple(range(1990, 2021, 5))
PROJECTION_YEARS: tuple[int, ...] = tuple(range(2020, 2101, 5))

COHORT_EDUCATION_LEVELS: dict[str, tuple[str, ...]] = {
    "Age 0-4": (),
    "Age 20-24": ("Primary Education", "Post Secondary Education"),
    "Age 65-69": ("No Education", "Upper Secondary Education"),
}
"""
Cohorts in the synthetic population data and their education levels

Cohorts without education levels are only reported as totals.
"""

RAW_INDEX_COLUMNS: tuple[str, ...] = ("model", "scenario", "region", "variable", "unit")


def get_ssp_like_correspondence() -> pd.DataFrame:
    """
    Get a correspondence table which looks like the GTAP one

    Uruguay and Paraguay are aggregated into one GTAP region.
    There is no raw data for Uruguay
    in [get_ssp_like_raw_data][(m).].

    Returns
    -------
    :
        Correspondence table
    """
    return pd.DataFrame(
        [
            (1, "BRA", "bra", "Brazil", "Brazil", "Brazil"),
            (2, "ARG", "arg", "Argentina", "Argentina", "Argentina"),
            (3, "URY", "xsm", "Rest of South America", "Uruguay", "Uruguay"),
            (3, "PRY", "xsm", "Rest of South America", "Paraguay", "Paraguay"),
        ],
        columns=list(CORRESPONDENCE_COLUMNS),
    )


def get_smooth_values(
    years: Iterable[int], base: float, growth: float, curvature: float = 0.5
) -> np.ndarray:
    """
    Get smooth (quadratic) values

    Parameters
    ----------
    years
        Years for which to get values

    base
        Value in 2020

    growth
        Linear growth per century, relative to `base`

    curvature
        Quadratic growth per century squared, relative to `base`

    Returns
    -------
    :
        Values
    """
    t = (np.asarray(list(years), dtype=float) - 2020.0) / 100.0
    return base * (1.0 + growth * t + curvature * t**2)


def _get_scenario_years_growth(
    scenarios: Iterable[str],
    historical_years: Iterable[int],
    projection_years: Iterable[int],
) -> list[tuple[str, tuple[int, ...], float]]:
    res = [(DEFAULT_BASELINE_SCENARIO, tuple(historical_years), 0.2)]
    res.extend(
        (scenario, tuple(projection_years), 0.1 * (i + 1))
        for i, scenario in enumerate(scenarios)
    )
    return res


def to_long(timeseries: pd.DataFrame) -> pd.DataFrame:
    """
    Convert timeseries (years as columns) to a long table of raw data
    """
    return (
        timeseries.reorder_levels(list(RAW_INDEX_COLUMNS))
        .rename_axis(columns="year")
        .melt(ignore_index=False, value_name="value")
        .dropna()
        .reset_index()
        .astype({"year": int})
    )


def get_ssp_like_population(
    regions: Iterable[str] = ("Brazil", "Argentina", "Paraguay"),
    scenarios: Iterable[str] = SSP_LIKE_SCENARIOS,
    historical_years: Iterable[int] = HISTORICAL_YEARS,
    projection_years: Iterable[int] = PROJECTION_YEARS,
) -> pd.DataFrame:
    """
    Get population data which looks like the SSP population projections

    Totals (over education levels, cohorts and genders)
    are the sums of their components.

    Parameters
    ----------
    regions
        Regions (country names) to include

    scenarios
        Scenarios to include, other than the baseline

    historical_years
        Years reported for the baseline scenario

    projection_years
        Years reported for the other scenarios

    Returns
    -------
    :
        Raw population data
    """
    try:
        from pandas_indexing.core import assignlevel, formatlevel
    except ImportError as exc:
        raise MissingOptionalDependencyError(
            "get_ssp_like_population", requirement="pandas_indexing"
        ) from exc

    regions = list(regions)
    genders = ("Male", "Female")

    res_l = []
    for scenario, years, growth in _get_scenario_years_growth(
        scenarios, historical_years, projection_years
    ):
        rows = []
        index = []
        for (i_region, region), (i_gender, gender), (i_cohort, cohort) in (
            itertools.product(
                enumerate(regions),
                enumerate(genders),
                enumerate(COHORT_EDUCATION_LEVELS),
            )
        ):
            education_levels = COHORT_EDUCATION_LEVELS[cohort] or ("",)
            for i_educ, education_level in enumerate(education_levels):
                base = 1.0 + i_region + 0.5 * i_gender + i_cohort + 0.25 * i_educ
                rows.append(get_smooth_values(years, base=base, growth=growth))
                index.append((region, gender, cohort, education_level))

        components = pd.DataFrame(
            rows,
            columns=list(years),
            index=pd.MultiIndex.from_tuples(
                index, names=["region", "gender_code", "cohort", "education_level"]
            ),
        )
        by_education = components.loc[
            components.index.get_level_values("education_level") != ""
        ]
        cohort_totals = groupby_except(components, "education_level").sum()
        gender_totals = groupby_except(cohort_totals, "cohort").sum()
        totals = groupby_except(gender_totals, "gender_code").sum()

        population = pd.concat(
            [
                formatlevel(
                    by_education,
                    variable="Population|{gender_code}|{cohort}|{education_level}",
                    drop=True,
                ),
                formatlevel(
                    cohort_totals,
                    variable="Population|{gender_code}|{cohort}",
                    drop=True,
                ),
                formatlevel(
                    gender_totals, variable="Population|{gender_code}", drop=True
                ),
                assignlevel(totals, variable="Population"),
            ]
        )
        scenario_res = pd.concat(
            [
                assignlevel(population, unit="million"),
                assignlevel(
                    totals * 0.0 + 8.0, variable="Mean Years of Education", unit="years"
                ),
            ]
        )
        res_l.append(
            assignlevel(scenario_res, model=POPULATION_MODEL, scenario=scenario)
        )

    return to_long(pd.concat(res_l))


def get_ssp_like_gdp(
    regions: Iterable[str] = ("Brazil", "Argentina", "Paraguay"),
    scenarios: Iterable[str] = SSP_LIKE_SCENARIOS,
    historical_years: Iterable[int] = (2010, 2015, 2020),
    projection_years: Iterable[int] = PROJECTION_YEARS,
) -> pd.DataFrame:
    """
    Get GDP data which looks like the SSP GDP projections

    Parameters
    ----------
    regions
        Regions (country names) to include

    scenarios
        Scenarios to include, other than the baseline

    historical_years
        Years reported for the baseline scenario

    projection_years
        Years reported for the other scenarios

    Returns
    -------
    :
        Raw GDP data for the IIASA and OECD models
    """
    regions = list(regions)
    variables = (
        (IIASA_GDP_MODEL, "GDP|PPP", "billion USD_2017/yr", 100.0),
        (IIASA_GDP_MODEL, "GDP|PPP [per capita]", "USD_2017/yr", 10.0),
        (IIASA_GDP_MODEL, "Population", "million", 5.0),
        (OECD_GDP_MODEL, "GDP|PPP", "billion USD_2017/yr", 110.0),
    )

    res_l = []
    for scenario, years, growth in _get_scenario_years_growth(
        scenarios, historical_years, projection_years
    ):
        for (model, variable, unit, base), (i_region, region) in itertools.product(
            variables, enumerate(regions)
        ):
            res_l.append(
                pd.DataFrame(
                    {
                        "model": model,
                        "scenario": scenario,
                        "region": region,
                        "variable": variable,
                        "unit": unit,
                        "year": list(years),
                        "value": get_smooth_values(
                            years, base=base * (1 + i_region), growth=3 * growth
                        ),
                    }
                )
            )

    return pd.concat(res_l, ignore_index=True)


def get_ssp_like_raw_data(
    regions: Iterable[str] = ("Brazil", "Argentina", "Paraguay"),
    scenarios: Iterable[str] = SSP_LIKE_SCENARIOS,
) -> pd.DataFrame:
    """
    Get raw data which looks like the SSP database

    Parameters
    ----------
    regions
        Regions (country names) to include

    scenarios
        Scenarios to include, other than the baseline

    Returns
    -------
    :
        Raw population and GDP data, in long format
    """
    regions = list(regions)
    scenarios = list(scenarios)

    return pd.concat(
        [
            get_ssp_like_population(regions=regions, scenarios=scenarios),
            get_ssp_like_gdp(regions=regions, scenarios=scenarios),
        ],
        ignore_index=True,
    )
