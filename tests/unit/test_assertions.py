"""
Tests of `gtapssp.assertions`
"""

import re
from contextlib import nullcontext as does_not_raise

import numpy as np
import pandas as pd
import pytest

from gtapssp.assertions import (
    assert_has_columns,
    assert_no_missing_values,
    assert_years_within_bounds,
)
from gtapssp.exceptions import ConfigurationError


@pytest.mark.parametrize(
    "years, exp",
    (
        pytest.param([2020, 2100], does_not_raise(), id="within-bounds"),
        pytest.param([1500, 3000], does_not_raise(), id="inclusive-bounds"),
        pytest.param(
            [1499, 2020, 3001],
            pytest.raises(
                ConfigurationError,
                match=re.escape("Out of bounds: [1499, 3001]"),
            ),
            id="out-of-bounds",
        ),
    ),
)
def test_assert_years_within_bounds(years, exp):
    with exp:
        assert_years_within_bounds(years)


def test_assert_has_columns():
    table = pd.DataFrame({"model": ["ma"], "year": [2020]})

    assert_has_columns(table, ["model"])
    with pytest.raises(
        ConfigurationError,
        match=re.escape("raw table is missing required columns: ['value']"),
    ):
        assert_has_columns(table, ["model", "value"], "raw table")


def test_assert_no_missing_values():
    table = pd.DataFrame({"value": [1.0, np.nan, np.nan]})

    assert_no_missing_values(table.iloc[:1], "value")
    with pytest.raises(AssertionError, match="value has 2 missing value"):
        assert_no_missing_values(table, "value")
