"""
Tests of `gtapssp.gempack`
"""

import re

import pandas as pd
import pytest

from gtapssp.exceptions import ConfigurationError, ExternalIOError
from gtapssp.gempack import get_region_mapping, parse_gempack_lines, read_gempack_text

AGGREGATION_FILE = """\
! Aggregation definition for a three region aggregation
= = = = = = = = = = = = = = = = = = = = = = = = = = = = = =
! Section 1
! Regions
SAM & South America & 2
ROW & Rest of world

! Section 4
! Mapping from original to aggregated regions
bra & SAM
arg & SAM
xsm & ROW
= = = = = = = = = = = = = = = = = = = = = = = = = = = = = =
! Section 5
"""


def test_parse_gempack_lines():
    res = parse_gempack_lines(AGGREGATION_FILE.splitlines())

    assert list(res) == ["Section 1", "Section 4", "Section 5"]
    pd.testing.assert_frame_equal(
        res["Section 1"],
        pd.DataFrame(
            [["SAM", "South America", "2"], ["ROW", "Rest of world", None]],
            columns=["Column1", "Column2", "Column3"],
        ),
    )
    pd.testing.assert_frame_equal(
        res["Section 4"],
        pd.DataFrame(
            [["bra", "SAM"], ["arg", "SAM"], ["xsm", "ROW"]],
            columns=["Column1", "Column2"],
        ),
    )
    assert res["Section 5"].empty


def test_read_gempack_text(tmp_path):
    path = tmp_path / "aggregation.txt"
    path.write_text(AGGREGATION_FILE)

    res = read_gempack_text(path)

    assert list(res) == ["Section 1", "Section 4", "Section 5"]


def test_read_gempack_text_missing_file(tmp_path):
    with pytest.raises(ExternalIOError, match="Could not read aggregation definition"):
        read_gempack_text(tmp_path / "missing.txt")


@pytest.mark.parametrize("section", ("Section 4", "MREG", "Section MREG"))
def test_get_region_mapping(section):
    sections = {
        "Section 1": pd.DataFrame([["SAM"]], columns=["Column1"]),
        section: pd.DataFrame(
            [["bra", "SAM", "ignored"], ["Xsm", "ROW", None]],
            columns=["Column1", "Column2", "Column3"],
        ),
    }

    res = get_region_mapping(sections)

    pd.testing.assert_frame_equal(
        res,
        pd.DataFrame(
            [["BRA", "SAM"], ["XSM", "ROW"]],
            columns=["reg_gtap_code", "reg_gtap_code_target"],
        ),
    )


def test_get_region_mapping_prefers_section_4():
    sections = {
        "MREG": pd.DataFrame([["bra", "MREG"]], columns=["Column1", "Column2"]),
        "Section 4": pd.DataFrame([["bra", "S4"]], columns=["Column1", "Column2"]),
    }

    res = get_region_mapping(sections)

    assert res["reg_gtap_code_target"].tolist() == ["S4"]


@pytest.mark.parametrize(
    "sections, match",
    (
        pytest.param(
            {"Section 1": pd.DataFrame([["a", "b"]], columns=["Column1", "Column2"])},
            re.escape("None of ('Section 4', 'MREG', 'Section MREG') found"),
            id="no-mapping-section",
        ),
        pytest.param(
            {"Section 4": pd.DataFrame([["a"]], columns=["Column1"])},
            "must have at least two columns",
            id="one-column",
        ),
    ),
)
def test_get_region_mapping_errors(sections, match):
    with pytest.raises(ConfigurationError, match=match):
        get_region_mapping(sections)
