"""
Tests of `gtapssp.growth`
"""

import numpy as np
import pandas as pd
import pytest

from gtapssp.exceptions import ConfigurationError
from gtapssp.growth import growth_rate


@pytest.mark.parametrize(
    "values, exp",
    (
        pytest.param([100.0, 110.0], [0.0, 10.0], id="basic"),
        pytest.param([0.0, 5.0, 10.0], [0.0, 0.0, 100.0], id="previous-zero"),
        pytest.param([4.0, 2.0, 0.0], [0.0, -50.0, -100.0], id="decline"),
        pytest.param([3.0], [0.0], id="single-year"),
    ),
)
def test_growth_rate(values, exp):
    table = pd.DataFrame(
        {
            "variable": "Population",
            "year": range(2020, 2020 + len(values)),
            "value": values,
        }
    )

    res = growth_rate(table, group_fields=["variable"])

    np.testing.assert_allclose(res["growth_rate"], exp)
    assert np.isfinite(res["growth_rate"]).all()


def test_growth_rate_groups_and_order():
    table = pd.DataFrame(
        [
            ("b", np.nan, 2021, 30.0),
            ("a", "x", 2021, 110.0),
            ("b", np.nan, 2020, 20.0),
            ("a", "x", 2020, 100.0),
            ("a", "y", 2020, 1.0),
        ],
        columns=["variable", "cohort", "year", "value"],
    )

    res = growth_rate(
        table, group_fields=["variable", "cohort"], growth_rate_field="gr"
    )

    assert res[["variable", "year", "gr"]].values.tolist() == [
        ["a", 2020, 0.0],
        ["a", 2021, 10.0],
        ["a", 2020, 0.0],
        ["b", 2020, 0.0],
        ["b", 2021, 50.0],
    ]


def test_growth_rate_uses_previous_reported_year():
    table = pd.DataFrame({"variable": "a", "year": [2020, 2030], "value": [1.0, 2.0]})

    res = growth_rate(table, group_fields=["variable"])

    assert res["growth_rate"].tolist() == [0.0, 100.0]


@pytest.mark.parametrize(
    "table, kwargs, match",
    (
        pytest.param(
            pd.DataFrame({"variable": "a", "year": [2020, 2020], "value": [1.0, 2.0]}),
            {},
            "Each group must report each year at most once",
            id="duplicate-years",
        ),
        pytest.param(
            pd.DataFrame({"variable": "a", "year": [2020], "value": [1.0]}),
            dict(growth_rate_field="value"),
            "'value' is already in the table",
            id="field-clash",
        ),
    ),
)
def test_growth_rate_errors(table, kwargs, match):
    with pytest.raises(ConfigurationError, match=match):
        growth_rate(table, group_fields=["variable"], **kwargs)
