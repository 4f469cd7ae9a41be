"""
Output of the reconciled panel

Two formats are supported:

- a flat CSV file, one row per record
- a GEMPACK header array (`.har`) file,
  one dense array per major variable group

The binary header array format is written by an external writer,
which receives the dense arrays prepared here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import attr
import numpy as np
import pandas as pd
from attrs import define, field

from gtapssp.assertions import assert_has_columns
from gtapssp.exceptions import ConfigurationError, ExternalIOError
from gtapssp.labels import UNMAPPED_LABEL

logger = logging.getLogger(__name__)

SUPPORTED_OUTPUT_EXTENSIONS: tuple[str, ...] = (".csv", ".har")
"""
Supported output file extensions
"""

VALUE_COLUMN: str = "POP"
"""
Column of the output panel which holds the values
"""


@define(frozen=True)
class HeaderArray:
    """
    A dense, named array of the output
    """

    name: str
    """
    Header name (at most four characters in `.har` files)
    """

    description: str
    """
    Human-readable description
    """

    dims: tuple[str, ...] = field(converter=lambda v: tuple(v))
    """
    Name of each dimension
    """

    coords: tuple[tuple[str, ...], ...] = field(
        converter=lambda v: tuple(tuple(c) for c in v)
    )
    """
    Labels along each dimension
    """

    values: np.ndarray = field(eq=False)
    """
    Values, with shape `tuple(len(c) for c in coords)`
    """

    @values.validator
    def values_validator(
        self, attribute: attr.Attribute[Any], value: np.ndarray
    ) -> None:
        """
        Validate the shape of the values
        """
        exp_shape = tuple(len(c) for c in self.coords)
        if len(self.dims) != len(self.coords):
            msg = (
                f"Got {len(self.dims)} dims but {len(self.coords)} sets of coords"
            )
            raise ValueError(msg)

        if value.shape != exp_shape:
            msg = f"values must have shape {exp_shape}. Received: {value.shape}"
            raise ValueError(msg)

    def to_series(self) -> pd.Series[float]:  # type: ignore # pandas-stubs out of date
        """
        Convert to a [pd.Series][pandas.Series] with a MultiIndex
        """
        index = pd.MultiIndex.from_product(self.coords, names=self.dims)
        return pd.Series(self.values.ravel(), index=index, name=self.name)


@define(frozen=True)
class HeaderArraySpec:
    """
    Definition of one of the dense arrays of the output
    """

    name: str
    """
    Header name
    """

    description: str
    """
    Human-readable description
    """

    model: str
    """
    Model whose records make up the array
    """

    dims: tuple[str, ...] = field(converter=lambda v: tuple(v))
    """
    Output columns which span the array.

    All other columns are summed over.
    """

    selected: Mapping[str, str] = field(factory=dict)
    """
    Only records with these values are included
    """

    excluded: Mapping[str, str] = field(factory=dict)
    """
    Records with these values are excluded
    """


DEFAULT_HEADER_ARRAY_SPECS: tuple[HeaderArraySpec, ...] = (
    HeaderArraySpec(
        name="POP",
        description="IIASA-WiC POP 2023 (million people)",
        model="IIASA-WiC POP 2023",
        dims=("SCE", "ISO", "GND", "YRS", "AGE"),
        selected={"EDU": UNMAPPED_LABEL},
        excluded={"GND": UNMAPPED_LABEL},
    ),
    HeaderArraySpec(
        name="GDPI",
        description="IIASA GDP 2023 (USD_2017/yr)",
        model="IIASA GDP 2023",
        dims=("VAR", "SCE", "ISO", "YRS"),
        excluded={"VAR": "Population"},
    ),
    HeaderArraySpec(
        name="GDPO",
        description="OECD ENV-Growth 2023 (USD_2017/yr)",
        model="OECD ENV-Growth 2023",
        dims=("VAR", "SCE", "ISO", "YRS"),
    ),
)
"""
Default dense arrays

Population is taken from the totals over education levels,
so that each person is counted once.
"""

HARWriter = Callable[[Path, Sequence[HeaderArray]], None]
"""
Writer of header array files

Takes the path to write and the arrays to write in it.
"""


def get_header_array(
    panel: pd.DataFrame,
    spec: HeaderArraySpec,
    model_column: str = "MOD",
    value_column: str = VALUE_COLUMN,
) -> HeaderArray:
    """
    Get a dense array from the output panel

    Parameters
    ----------
    panel
        Output panel

    spec
        Definition of the array

    model_column
        Column which holds the model

    value_column
        Column which holds the values

    Returns
    -------
    :
        Dense array. Combinations without records are zero.
    """
    assert_has_columns(
        panel,
        [model_column, value_column, *spec.dims, *spec.selected, *spec.excluded],
        "output panel",
    )
    keep = panel[model_column] == spec.model
    for column, value in spec.selected.items():
        keep &= panel[column] == value

    for column, value in spec.excluded.items():
        keep &= panel[column] != value

    dims = list(spec.dims)
    summed = panel.loc[keep].groupby(dims)[value_column].sum(min_count=1)
    if summed.empty:
        logger.warning("No records for header array %s", spec.name)

    coords = [sorted(panel.loc[keep, d].dropna().unique().tolist()) for d in dims]
    index = pd.MultiIndex.from_product(coords, names=dims)
    values = (
        summed.reindex(index, fill_value=0.0)
        .fillna(0.0)
        .to_numpy(dtype=float)
        .reshape(tuple(len(c) for c in coords))
    )

    return HeaderArray(
        name=spec.name,
        description=spec.description,
        dims=dims,
        coords=coords,
        values=values,
    )


def get_header_arrays(
    panel: pd.DataFrame,
    specs: Sequence[HeaderArraySpec] = DEFAULT_HEADER_ARRAY_SPECS,
) -> list[HeaderArray]:
    """
    Get all the dense arrays from the output panel

    Parameters
    ----------
    panel
        Output panel

    specs
        Definitions of the arrays

    Returns
    -------
    :
        Dense arrays, in the order of `specs`
    """
    return [get_header_array(panel, spec) for spec in specs]


def assert_output_path_is_supported(
    out_file: Path, har_writer: HARWriter | None = None
) -> None:
    """
    Assert that we can write to a path

    Parameters
    ----------
    out_file
        Path to check

    har_writer
        Writer of header array files

    Raises
    ------
    ConfigurationError
        The extension of `out_file` isn't supported
        or it is `.har` and no `har_writer` is supplied
    """
    suffix = Path(out_file).suffix.lower()
    if suffix not in SUPPORTED_OUTPUT_EXTENSIONS:
        msg = (
            f"Output file extension must be one of {SUPPORTED_OUTPUT_EXTENSIONS}. "
            f"Received: {out_file}"
        )
        raise ConfigurationError(msg)

    if suffix == ".har" and har_writer is None:
        msg = f"A header array writer is required to write {out_file}"
        raise ConfigurationError(msg)


def write_csv(panel: pd.DataFrame, out_file: Path) -> Path:
    """
    Write the output panel to a CSV file

    Parameters
    ----------
    panel
        Output panel

    out_file
        File to write

    Returns
    -------
    :
        Path of the written file

    Raises
    ------
    ExternalIOError
        The file could not be written
    """
    out_file = Path(out_file)
    try:
        panel.to_csv(out_file, index=False)
    except OSError as exc:
        msg = f"Could not write {out_file}"
        raise ExternalIOError(msg) from exc

    return out_file


def write_output(
    panel: pd.DataFrame,
    out_file: Path,
    har_writer: HARWriter | None = None,
    header_array_specs: Sequence[HeaderArraySpec] = DEFAULT_HEADER_ARRAY_SPECS,
) -> Path:
    """
    Write the output panel, in the format given by the file's extension

    Parameters
    ----------
    panel
        Output panel

    out_file
        File to write

    har_writer
        Writer of header array files. Required for `.har` output.

    header_array_specs
        Definitions of the arrays to write in `.har` output

    Returns
    -------
    :
        Path of the written file

    Raises
    ------
    ConfigurationError
        The output format isn't supported

    ExternalIOError
        The file could not be written
    """
    out_file = Path(out_file)
    assert_output_path_is_supported(out_file, har_writer=har_writer)

    if out_file.suffix.lower() == ".csv":
        write_csv(panel, out_file)

    else:
        arrays = get_header_arrays(panel, specs=header_array_specs)
        try:
            har_writer(out_file, arrays)  # type: ignore[misc]
        except OSError as exc:
            msg = f"Could not write {out_file}"
            raise ExternalIOError(msg) from exc

    logger.info("Wrote %s", out_file)

    return out_file
