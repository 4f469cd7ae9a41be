"""
Tests of `gtapssp.output`
"""

import re

import numpy as np
import pandas as pd
import pytest

from gtapssp.exceptions import ConfigurationError, ExternalIOError
from gtapssp.output import (
    DEFAULT_HEADER_ARRAY_SPECS,
    HeaderArray,
    HeaderArraySpec,
    assert_output_path_is_supported,
    get_header_array,
    get_header_arrays,
    write_output,
)
from gtapssp.reconciliation import OUTPUT_COLUMNS

POP = "IIASA-WiC POP 2023"
GDP_IIASA = "IIASA GDP 2023"
GDP_OECD = "OECD ENV-Growth 2023"


def get_panel():
    return pd.DataFrame(
        [
            (POP, "Population", "TOTL", "SSP1", "BRA", "MALE", "0-4", "Y2020", 1.0),
            (POP, "Population", "TOTL", "SSP1", "BRA", "FEMALE", "0-4", "Y2020", 2.0),
            (POP, "Population", "TOTL", "SSP1", "ARG", "MALE", "0-4", "Y2021", 3.0),
            (POP, "Population", "TOTL", "SSP1", "ARG", "TOTL", "TOTL", "Y2021", 9.0),
            (POP, "Population", "PRIM", "SSP1", "ARG", "MALE", "0-4", "Y2021", 0.5),
            (GDP_IIASA, "GDP|PPP", "TOTL", "SSP1", "BRA", "TOTL", "TOTL", "Y2020", 4.0),
            (GDP_IIASA, "Population", "TOTL", "SSP1", "BRA", "TOTL", "TOTL", "Y2020", 5.0),
            (GDP_OECD, "GDP|PPP", "TOTL", "SSP2", "ARG", "TOTL", "TOTL", "Y2020", 6.0),
        ],
        columns=list(OUTPUT_COLUMNS.values()),
    )


def test_get_header_array_population():
    res = get_header_array(get_panel(), DEFAULT_HEADER_ARRAY_SPECS[0])

    assert res.name == "POP"
    assert res.description == "IIASA-WiC POP 2023 (million people)"
    assert res.dims == ("SCE", "ISO", "GND", "YRS", "AGE")
    assert res.coords == (
        ("SSP1",),
        ("ARG", "BRA"),
        ("FEMALE", "MALE"),
        ("Y2020", "Y2021"),
        ("0-4",),
    )
    assert res.values.shape == (1, 2, 2, 2, 1)

    series = res.to_series()
    # Education subsets and gender totals are excluded
    assert series.loc[("SSP1", "ARG", "MALE", "Y2021", "0-4")] == 3.0
    assert series.loc[("SSP1", "BRA", "FEMALE", "Y2020", "0-4")] == 2.0
    # Combinations without records are filled with zero
    assert series.loc[("SSP1", "ARG", "FEMALE", "Y2021", "0-4")] == 0.0
    assert series.sum() == 6.0


def test_get_header_arrays_gdp():
    res = get_header_arrays(get_panel())

    assert [v.name for v in res] == ["POP", "GDPI", "GDPO"]

    gdpi = res[1]
    assert gdpi.coords == (("GDP|PPP",), ("SSP1",), ("BRA",), ("Y2020",))
    np.testing.assert_equal(gdpi.values, np.array([[[[4.0]]]]))

    gdpo = res[2]
    assert gdpo.description == "OECD ENV-Growth 2023 (USD_2017/yr)"
    assert gdpo.coords == (("GDP|PPP",), ("SSP2",), ("ARG",), ("Y2020",))


def test_get_header_array_no_records(caplog):
    spec = HeaderArraySpec(
        name="NONE", description="Nothing", model="not-a-model", dims=("ISO",)
    )

    with caplog.at_level("WARNING"):
        res = get_header_array(get_panel(), spec)

    assert res.values.shape == (0,)
    assert "No records for header array NONE" in caplog.text


def test_header_array_shape_validation():
    with pytest.raises(ValueError, match=re.escape("values must have shape (2,)")):
        HeaderArray(
            name="X",
            description="X",
            dims=("ISO",),
            coords=[["A", "B"]],
            values=np.zeros(3),
        )


@pytest.mark.parametrize(
    "out_file, har_writer, match",
    (
        pytest.param(
            "out.xlsx",
            None,
            "Output file extension must be one of",
            id="unsupported-extension",
        ),
        pytest.param(
            "out.har",
            None,
            "A header array writer is required",
            id="har-without-writer",
        ),
    ),
)
def test_assert_output_path_is_supported_errors(out_file, har_writer, match):
    with pytest.raises(ConfigurationError, match=match):
        assert_output_path_is_supported(out_file, har_writer=har_writer)


def test_write_output_csv(tmp_path):
    out_file = tmp_path / "out.csv"

    res = write_output(get_panel(), out_file)

    assert res == out_file
    pd.testing.assert_frame_equal(pd.read_csv(out_file), get_panel())


def test_write_output_har(tmp_path):
    calls = []

    def har_writer(out_file, arrays):
        calls.append((out_file, arrays))

    out_file = tmp_path / "out.HAR"

    write_output(get_panel(), out_file, har_writer=har_writer)

    assert len(calls) == 1
    assert calls[0][0] == out_file
    assert [v.name for v in calls[0][1]] == ["POP", "GDPI", "GDPO"]


def test_write_output_io_error(tmp_path):
    out_file = tmp_path / "not-a-dir" / "out.csv"

    with pytest.raises(ExternalIOError, match="Could not write"):
        write_output(get_panel(), out_file)


def test_write_output_har_writer_io_error(tmp_path):
    def har_writer(out_file, arrays):
        raise PermissionError(out_file)

    with pytest.raises(ExternalIOError, match="Could not write"):
        write_output(get_panel(), tmp_path / "out.har", har_writer=har_writer)
