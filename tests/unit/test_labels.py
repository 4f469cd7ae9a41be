"""
Tests of `gtapssp.labels`
"""

import logging

import numpy as np
import pandas as pd

from gtapssp.labels import (
    COHORT_DICTIONARY,
    EDUCATION_DICTIONARY,
    GENDER_DICTIONARY,
    UNMAPPED_LABEL,
    join_labels,
)


def test_dictionaries_have_unique_codes():
    for dictionary, code_field in (
        (EDUCATION_DICTIONARY, "education_level"),
        (COHORT_DICTIONARY, "cohort"),
        (GENDER_DICTIONARY, "gender_code"),
    ):
        assert not dictionary[code_field].duplicated().any()


def test_cohort_dictionary():
    cohorts = COHORT_DICTIONARY.set_index("cohort")

    assert cohorts.loc["Age 0-4"].tolist() == ["PLT15", "P0004"]
    assert cohorts.loc["Age 10-14"].tolist() == ["PLT15", "P1014"]
    assert cohorts.loc["Age 15-19"].tolist() == ["P1564", "P1519"]
    assert cohorts.loc["Age 60-64"].tolist() == ["P1564", "P6064"]
    assert cohorts.loc["Age 65-69"].tolist() == ["P65UP", "P6569"]
    assert cohorts.loc["Age 100+"].tolist() == ["P65UP", "P100UP"]


def test_join_labels(caplog):
    table = pd.DataFrame(
        {
            "gender_code": ["Male", "Female", np.nan, "Other"],
            "value": [1.0, 2.0, 3.0, 4.0],
        }
    )

    with caplog.at_level(logging.WARNING, logger="gtapssp.labels"):
        res = join_labels(table, GENDER_DICTIONARY, code_field="gender_code")

    assert res["gender"].tolist() == ["MALE", "FEML", UNMAPPED_LABEL, UNMAPPED_LABEL]
    assert res["value"].tolist() == [1.0, 2.0, 3.0, 4.0]
    # Only codes which are set but unknown are worth a warning
    assert "['Other']" in caplog.text


def test_join_labels_all_missing_codes():
    table = pd.DataFrame({"cohort": [np.nan, np.nan], "value": [1.0, 2.0]})

    res = join_labels(
        table, COHORT_DICTIONARY, code_field="cohort", label_fields=["age"]
    )

    assert res.columns.tolist() == ["cohort", "value", "age"]
    assert res["age"].tolist() == [UNMAPPED_LABEL, UNMAPPED_LABEL]
