"""
Tests of `gtapssp.interpolation.spline`
"""

import logging
import re

import numpy as np
import numpy.testing as npt
import pandas as pd
import pytest

from gtapssp.exceptions import ConfigurationError, InsufficientDataError
from gtapssp.interpolation import SUPPORTED_SPLINE_METHODS, interpolate_spline
from gtapssp.interpolation.spline import spline_interpolate_row

GROUP_FIELDS = ["model", "scenario", "region", "variable", "unit"]


def get_table(records):
    return pd.DataFrame(
        [
            ("ma", "sa", region, "GDP|PPP", "USD", year, value)
            for region, year, value in records
        ],
        columns=[*GROUP_FIELDS, "year", "value"],
    )


@pytest.mark.parametrize("method", SUPPORTED_SPLINE_METHODS)
def test_two_points_is_linear(method):
    table = get_table([("r1", 2020, 100.0), ("r1", 2030, 200.0)])

    res = interpolate_spline(table, group_fields=GROUP_FIELDS, method=method)

    npt.assert_array_equal(res["year"], np.arange(2020, 2031))
    npt.assert_allclose(res["value"], np.linspace(100.0, 200.0, 11))
    npt.assert_allclose(res.loc[res["year"] == 2025, "value"], 150.0)


def test_observed_values_are_reproduced_and_span_filled():
    years = [2020, 2025, 2035, 2050, 2100]
    values = [1.3, 7.1, 2.2, 9.9, 0.1]
    table = get_table(
        [("r1", y, v) for y, v in zip(years, values)]
        + [("r2", 2030, 5.0), ("r2", 2040, 6.0), ("r2", 2045, 8.0)]
    )

    res = interpolate_spline(table, group_fields=GROUP_FIELDS)

    r1 = res.loc[res["region"] == "r1"].set_index("year")["value"]
    assert r1.index.tolist() == list(range(2020, 2101))
    # Exactly, not just approximately
    assert r1.loc[years].tolist() == values

    # No extrapolation
    r2 = res.loc[res["region"] == "r2"].set_index("year")["value"]
    assert r2.index.tolist() == list(range(2030, 2046))


def test_quadratic_not_a_knot():
    # A not-a-knot spline reproduces cubics (so also quadratics) exactly
    years = np.arange(2000, 2101, 10)
    table = get_table([("r1", y, (y - 2000) ** 2 / 100.0) for y in years])

    res = interpolate_spline(table, group_fields=GROUP_FIELDS, method="not-a-knot")

    npt.assert_allclose(res["value"], (res["year"] - 2000) ** 2 / 100.0, atol=1e-8)


def test_idempotent():
    table = get_table([("r1", 2020, 1.0), ("r1", 2030, 4.0), ("r1", 2050, 2.0)])

    once = interpolate_spline(table, group_fields=GROUP_FIELDS)
    twice = interpolate_spline(once, group_fields=GROUP_FIELDS)

    pd.testing.assert_frame_equal(once, twice)


def test_single_point_passes_through(caplog):
    table = get_table([("r1", 2020, 3.0), ("r2", 2020, 1.0), ("r2", 2022, 2.0)])

    with caplog.at_level(logging.DEBUG, logger="gtapssp.interpolation.spline"):
        res = interpolate_spline(table, group_fields=GROUP_FIELDS)

    r1 = res.loc[res["region"] == "r1"]
    assert r1["year"].tolist() == [2020]
    assert r1["value"].tolist() == [3.0]
    assert res.loc[res["region"] == "r2", "year"].tolist() == [2020, 2021, 2022]
    assert "only 1 year(s)" in caplog.text


def test_single_point_raise():
    table = get_table([("r1", 2020, 3.0)])

    with pytest.raises(
        InsufficientDataError,
        match=re.escape("has data for 1 distinct year(s), at least 2 are required"),
    ):
        interpolate_spline(table, group_fields=GROUP_FIELDS, on_insufficient="raise")


def test_missing_values_are_ignored():
    table = get_table([("r1", 2020, 1.0), ("r1", 2025, np.nan), ("r1", 2030, 3.0)])

    res = interpolate_spline(table, group_fields=GROUP_FIELDS)

    npt.assert_allclose(res["value"], np.linspace(1.0, 3.0, 11))


def test_extra_columns_are_dropped():
    table = get_table([("r1", 2020, 1.0), ("r1", 2022, 3.0)]).assign(comment="hi")

    res = interpolate_spline(table, group_fields=GROUP_FIELDS)

    assert res.columns.tolist() == [*GROUP_FIELDS, "year", "value"]


def test_empty():
    res = interpolate_spline(get_table([]), group_fields=GROUP_FIELDS)

    assert res.empty
    assert res.columns.tolist() == [*GROUP_FIELDS, "year", "value"]


@pytest.mark.parametrize(
    "kwargs, match",
    (
        pytest.param(dict(method="fmm"), "method='fmm' is not supported", id="method"),
        pytest.param(
            dict(on_insufficient="drop"),
            "on_insufficient='drop' is not supported",
            id="on-insufficient",
        ),
        pytest.param(
            dict(group_fields=["model", "unknown"]),
            "missing required columns",
            id="missing-group-field",
        ),
        pytest.param(
            dict(group_fields=["model"]),
            "do not identify unique timeseries",
            id="non-unique-groups",
        ),
    ),
)
def test_configuration_errors(kwargs, match):
    table = get_table([("r1", 2020, 1.0), ("r2", 2020, 2.0)])
    call_kwargs = dict(group_fields=GROUP_FIELDS) | kwargs

    with pytest.raises(ConfigurationError, match=match):
        interpolate_spline(table, **call_kwargs)


def test_spline_interpolate_row_unsorted_input_is_not_needed():
    years, values = spline_interpolate_row(
        np.array([2000, 2002]), np.array([0.0, 2.0]), group=("a",)
    )

    npt.assert_array_equal(years, [2000, 2001, 2002])
    npt.assert_allclose(values, [0.0, 1.0, 2.0])
