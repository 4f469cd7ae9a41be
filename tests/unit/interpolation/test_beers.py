"""
Tests of `gtapssp.interpolation.beers`
"""

import numpy as np
import numpy.testing as npt
import pandas as pd
import pytest

from gtapssp.interpolation import (
    get_beers_coefficients,
    interpolate_beers,
    interpolate_spline,
)
from gtapssp.interpolation.beers import (
    STENCIL_OFFSETS,
    beers_interpolate_row,
    get_constant_step,
)

GROUP_FIELDS = ["model", "scenario", "region", "variable", "unit"]
RNG = np.random.default_rng(seed=2315)


def get_table(series):
    """
    Get a table from a mapping of variable to (years, values)
    """
    records = []
    for variable, (years, values) in series.items():
        records.extend(
            ("ma", "sa", "r1", variable, "million", year, value)
            for year, value in zip(years, values)
        )

    return pd.DataFrame(records, columns=[*GROUP_FIELDS, "year", "value"])


@pytest.mark.parametrize("step", (2, 5, 10))
def test_coefficients(step):
    coefficients = get_beers_coefficients(step)

    assert coefficients.shape == (step, len(STENCIL_OFFSETS))
    # Constants are reproduced
    npt.assert_allclose(coefficients.sum(axis=1), 1.0)
    # The panel start is reproduced exactly
    npt.assert_array_equal(coefficients[0], [0.0, 0.0, 1.0, 0.0, 0.0, 0.0])

    # Polynomials up to degree four are reproduced
    fractions = np.arange(step) / step
    offsets = np.array(STENCIL_OFFSETS, dtype=float)
    for degree in range(5):
        npt.assert_allclose(
            coefficients @ offsets**degree, fractions**degree, atol=1e-10
        )


def test_coefficients_are_cached_and_read_only():
    assert get_beers_coefficients(5) is get_beers_coefficients(5)
    with pytest.raises(ValueError, match="read-only"):
        get_beers_coefficients(5)[0, 0] = 3.0


def test_coefficients_step_too_small():
    with pytest.raises(ValueError, match="step must be at least 2"):
        get_beers_coefficients(1)


@pytest.mark.parametrize(
    "years, exp",
    (
        pytest.param(np.array([2000, 2005, 2010]), 5, id="constant"),
        pytest.param(np.array([2000, 2005, 2015]), None, id="varying"),
        pytest.param(np.array([2000, 2001]), 1, id="annual"),
    ),
)
def test_get_constant_step(years, exp):
    assert get_constant_step(years) == exp


def test_observed_values_are_reproduced():
    years = np.arange(2020, 2101, 5)
    values = RNG.uniform(1.0, 10.0, size=years.size)

    dense_years, dense_values = beers_interpolate_row(years, values)

    npt.assert_array_equal(dense_years, np.arange(2020, 2101))
    # Exactly, not just approximately
    npt.assert_array_equal(dense_values[np.searchsorted(dense_years, years)], values)


def test_quartic_exact_in_interior_panels():
    years = np.arange(2000, 2051, 5)

    def quartic(t):
        x = (t - 2000) / 10.0
        return 3.0 - 2.0 * x + 0.5 * x**2 + 0.1 * x**3 - 0.02 * x**4

    dense_years, dense_values = beers_interpolate_row(years, quartic(years))

    # Panels starting at the third snapshot
    # up to the panel ending at the third-to-last snapshot
    interior = (dense_years >= years[2]) & (dense_years <= years[-3])
    npt.assert_allclose(
        dense_values[interior], quartic(dense_years[interior]), rtol=1e-9
    )

    # The edge panels are linear
    npt.assert_allclose(
        dense_values[dense_years <= years[1]],
        np.interp(dense_years[dense_years <= years[1]], years, quartic(years)),
    )


def test_cohorts_add_up_to_total():
    years = np.arange(2020, 2101, 5)
    cohorts = {
        f"Population|Male|Age {start}-{start + 4}": (
            years,
            RNG.uniform(0.5, 3.0, size=years.size),
        )
        for start in (0, 5, 10)
    }
    total = np.sum([v for _, v in cohorts.values()], axis=0)
    table = get_table({**cohorts, "Population|Male": (years, total)})

    res = interpolate_beers(table, group_fields=GROUP_FIELDS).set_index(
        ["variable", "year"]
    )["value"]

    cohort_sum = (
        res.loc[res.index.get_level_values("variable") != "Population|Male"]
        .groupby("year")
        .sum()
    )
    npt.assert_allclose(
        cohort_sum.to_numpy(), res.loc["Population|Male"].to_numpy(), rtol=1e-10
    )


def test_idempotent():
    years = np.arange(2020, 2061, 5)
    table = get_table({"Population": (years, RNG.uniform(1.0, 2.0, size=years.size))})

    once = interpolate_beers(table, group_fields=GROUP_FIELDS)
    twice = interpolate_beers(once, group_fields=GROUP_FIELDS)

    pd.testing.assert_frame_equal(once, twice)


@pytest.mark.parametrize(
    "years",
    (
        pytest.param(np.arange(2020, 2041, 5), id="too-few-snapshots"),
        pytest.param(
            np.array([2020, 2025, 2030, 2040, 2050, 2060, 2070]), id="uneven-steps"
        ),
    ),
)
def test_falls_back_to_spline(years):
    values = RNG.uniform(1.0, 2.0, size=years.size)
    table = get_table({"Population": (years, values)})

    res = interpolate_beers(table, group_fields=GROUP_FIELDS)
    exp = interpolate_spline(table, group_fields=GROUP_FIELDS)

    pd.testing.assert_frame_equal(res, exp)


def test_single_snapshot_passes_through():
    table = get_table({"Population": ([2020], [3.0])})

    res = interpolate_beers(table, group_fields=GROUP_FIELDS)

    pd.testing.assert_frame_equal(res, table)


def test_groups_are_independent():
    years_a = np.arange(2020, 2101, 5)
    years_b = np.arange(1990, 2021, 10)
    values_a = RNG.uniform(1.0, 2.0, size=years_a.size)
    values_b = RNG.uniform(1.0, 2.0, size=years_b.size)
    table = get_table({"a": (years_a, values_a), "b": (years_b, values_b)})

    res = interpolate_beers(table, group_fields=GROUP_FIELDS)
    res_a = interpolate_beers(
        table.loc[table["variable"] == "a"], group_fields=GROUP_FIELDS
    )

    pd.testing.assert_frame_equal(
        res.loc[res["variable"] == "a"].reset_index(drop=True), res_a
    )
    assert res.loc[res["variable"] == "b", "year"].tolist() == list(range(1990, 2021))
