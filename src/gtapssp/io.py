"""
Reading of the raw data

Nothing in here is needed to process data which is already in memory.
"""

from __future__ import annotations

import logging
import re
import zipfile
from pathlib import Path

import pandas as pd

from gtapssp.exceptions import ExternalIOError, MissingOptionalDependencyError

logger = logging.getLogger(__name__)

IIASA_SSP_DATABASE: str = "ssp"
"""
Name of the SSP database in the IIASA data explorer
"""


def read_csv_from_zip(
    zip_dir: Path,
    zip_pattern: str,
    csv_pattern: str,
    combine_vertically: bool = True,
) -> pd.DataFrame | dict[str, pd.DataFrame]:
    """
    Read CSV files from zip archives

    Parameters
    ----------
    zip_dir
        Directory in which to look for zip archives

    zip_pattern
        Regular expression which must match (somewhere in) the archive's file name.
        Only files ending in `.zip` are considered.

    csv_pattern
        Regular expression which must match the start of the member's name.
        Only members ending in `.csv` are read.

    combine_vertically
        Combine the CSV files into a single table?

        Columns which aren't in every file are missing for the files without them.

    Returns
    -------
    :
        If `combine_vertically`, the combined table.
        Otherwise, a table per CSV file, keyed by the file's stem.

    Raises
    ------
    ExternalIOError
        `zip_dir` doesn't exist or an archive couldn't be read
    """
    zip_dir = Path(zip_dir)
    if not zip_dir.is_dir():
        msg = f"{zip_dir} is not a directory"
        raise ExternalIOError(msg)

    zip_re = re.compile(f"{zip_pattern}.*\\.zip$")
    csv_re = re.compile(f"^{csv_pattern}.*\\.csv$")

    res: dict[str, pd.DataFrame] = {}
    for zip_file in sorted(zip_dir.iterdir()):
        if not zip_re.search(zip_file.name):
            continue

        try:
            with zipfile.ZipFile(zip_file) as zf:
                for member in zf.namelist():
                    if not csv_re.match(member):
                        continue

                    logger.debug("Reading %s from %s", member, zip_file)
                    with zf.open(member) as fh:
                        res[Path(member).stem] = pd.read_csv(fh)

        except (OSError, zipfile.BadZipFile) as exc:
            msg = f"Could not read {zip_file}"
            raise ExternalIOError(msg) from exc

    if not res:
        logger.warning(
            "No CSV files matching %r in zip files matching %r in %s",
            csv_pattern,
            zip_pattern,
            zip_dir,
        )

    if not combine_vertically:
        return res

    if not res:
        return pd.DataFrame()

    return pd.concat(res.values(), ignore_index=True)


def fetch_iiasa_ssp(
    database: str = IIASA_SSP_DATABASE, out_file: Path | None = None, **kwargs
) -> pd.DataFrame:
    """
    Fetch the raw SSP data from the IIASA data explorer

    This downloads a lot of data so can take several minutes.

    Parameters
    ----------
    database
        Database to read

    out_file
        If supplied, the raw data is also written to this CSV file

    **kwargs
        Passed to [pyam.read_iiasa][]

    Returns
    -------
    :
        Raw data, in long format

    Raises
    ------
    MissingOptionalDependencyError
        pyam is not installed

    ExternalIOError
        The data could not be fetched or written
    """
    try:
        import pyam  # type: ignore # pyam not typed
    except ImportError as exc:
        raise MissingOptionalDependencyError(
            "fetch_iiasa_ssp", requirement="pyam"
        ) from exc

    logger.info("Fetching the %r database from IIASA", database)
    try:
        res = pyam.read_iiasa(database, **kwargs).data

    except OSError as exc:
        msg = f"Could not fetch the {database!r} database from IIASA"
        raise ExternalIOError(msg) from exc

    if out_file is not None:
        try:
            res.to_csv(out_file, index=False)
        except OSError as exc:
            msg = f"Could not write {out_file}"
            raise ExternalIOError(msg) from exc

        logger.info("Wrote the raw data to %s", out_file)

    return res
