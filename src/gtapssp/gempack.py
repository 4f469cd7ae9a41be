"""
Reading of GEMPACK-style aggregation definition files

These are the text files written alongside GTAP aggregations.
Comment lines start with `!`,
except for section headers which look like `! Section <name>`.
Within a section, each line is a record with fields separated by `&`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from gtapssp.exceptions import ConfigurationError, ExternalIOError

SECTION_HEADER_PATTERN = re.compile(r"^! Section\b")
SEPARATOR_LINE_PATTERN = re.compile(r"^= = = = = =")
FIELD_SEPARATOR_PATTERN = re.compile(r"\s*&\s*")

REGION_MAPPING_SECTIONS: tuple[str, ...] = ("Section 4", "MREG", "Section MREG")
"""
Sections which may hold the region mapping, in order of preference
"""


def parse_gempack_lines(lines: Iterable[str]) -> dict[str, pd.DataFrame]:
    """
    Parse the lines of a GEMPACK-style text file into one table per section

    Lines before the first section header are ignored.

    Parameters
    ----------
    lines
        Lines to parse

    Returns
    -------
    :
        Tables, keyed by section name (e.g. `"Section 4"`).
        Columns are named `Column1`, `Column2` etc.
        Records with fewer fields than the widest record are padded with `None`.
    """
    sections: dict[str, list[list[str]]] = {}
    current_section: str | None = None
    for raw_line in lines:
        if SEPARATOR_LINE_PATTERN.match(raw_line):
            continue

        if raw_line.startswith("!") and not SECTION_HEADER_PATTERN.match(raw_line):
            continue

        line = raw_line.strip()
        if not line:
            continue

        if SECTION_HEADER_PATTERN.match(line):
            current_section = line[len("! ") :]
            sections[current_section] = []
            continue

        if current_section is None:
            continue

        sections[current_section].append(FIELD_SEPARATOR_PATTERN.split(line))

    res = {}
    for name, records in sections.items():
        if not records:
            res[name] = pd.DataFrame()
            continue

        n_columns = max(len(r) for r in records)
        res[name] = pd.DataFrame(
            [r + [None] * (n_columns - len(r)) for r in records],
            columns=[f"Column{i + 1}" for i in range(n_columns)],
        )

    return res


def read_gempack_text(path: Path | str) -> dict[str, pd.DataFrame]:
    """
    Read a GEMPACK-style text file into one table per section

    Parameters
    ----------
    path
        Path to the file

    Returns
    -------
    :
        Tables, keyed by section name, see [parse_gempack_lines][(m).]

    Raises
    ------
    ExternalIOError
        The file could not be read
    """
    try:
        text = Path(path).read_text()
    except OSError as exc:
        msg = f"Could not read aggregation definition file {path}"
        raise ExternalIOError(msg) from exc

    return parse_gempack_lines(text.splitlines())


def get_region_mapping(
    sections: dict[str, pd.DataFrame],
    source_column: str = "reg_gtap_code",
    target_column: str = "reg_gtap_code_target",
) -> pd.DataFrame:
    """
    Get the region mapping from the sections of an aggregation definition file

    Parameters
    ----------
    sections
        Sections, as returned by [read_gempack_text][(m).]

    source_column
        Name of the column holding the source (i.e. original GTAP) code

    target_column
        Name of the column holding the target (i.e. aggregated) code

    Returns
    -------
    :
        Two-column mapping table.
        Source codes are upper-cased so they can be matched case-insensitively.

    Raises
    ------
    ConfigurationError
        None of [REGION_MAPPING_SECTIONS][(m).] are in `sections`
        or the section has fewer than two columns
    """
    for section in REGION_MAPPING_SECTIONS:
        if section in sections:
            mapping = sections[section]
            break
    else:
        msg = (
            f"None of {REGION_MAPPING_SECTIONS} found in the aggregation definition. "
            f"Available sections: {sorted(sections)}"
        )
        raise ConfigurationError(msg)

    if mapping.shape[1] < 2:  # noqa: PLR2004
        msg = (
            f"Section {section!r} must have at least two columns "
            "(source code and target code). "
            f"Columns: {mapping.columns.tolist()}"
        )
        raise ConfigurationError(msg)

    res = mapping.iloc[:, :2].copy()
    res.columns = [source_column, target_column]
    res[source_column] = res[source_column].str.upper()

    return res
