from __future__ import annotations

from pathlib import Path
from typing import IO, List, Optional, Union

import logging

import pandas as pd

from surveytab.config import DATA_DIR

logger = logging.getLogger(__name__)

CSV_SUFFIXES = (".csv", ".txt")
EXCEL_SUFFIXES = (".xlsx", ".xls")


class DataLoaderError(Exception):
    """Raised when a survey extract cannot be located or parsed."""


def _read(source: Union[Path, IO[bytes]], suffix: str, sheet_name: Optional[str]) -> pd.DataFrame:
    try:
        if suffix in CSV_SUFFIXES:
            return pd.read_csv(source)
        if suffix in EXCEL_SUFFIXES:
            return pd.read_excel(source, sheet_name=sheet_name or 0)
    except (OSError, ValueError, pd.errors.ParserError) as exc:
        raise DataLoaderError(f"Could not parse survey file: {exc}") from exc
    raise DataLoaderError(
        f"Unsupported file type '{suffix}'. Expected one of {CSV_SUFFIXES + EXCEL_SUFFIXES}."
    )


def load_survey_file(path: Union[str, Path], sheet_name: Optional[str] = None) -> pd.DataFrame:
    """
    Load a respondent-level survey extract (one row per respondent).

    CSV files go through pandas.read_csv; .xls/.xlsx through pandas.read_excel
    (first sheet unless sheet_name is given).
    """
    p = Path(path)
    if not p.exists():
        raise DataLoaderError(f"Survey file not found: {p}")

    logger.info("Loading survey file: %s", p)
    df = _read(p, p.suffix.lower(), sheet_name)
    logger.info("Loaded %d rows x %d columns from %s", df.shape[0], df.shape[1], p.name)
    return df


def load_survey_upload(buffer: IO[bytes], filename: str, sheet_name: Optional[str] = None) -> pd.DataFrame:
    """
    Same as load_survey_file, for an in-memory upload (e.g. Streamlit's file_uploader).
    """
    suffix = Path(filename).suffix.lower()
    logger.info("Loading uploaded survey file: %s", filename)
    return _read(buffer, suffix, sheet_name)


def list_data_files(data_dir: Optional[Path] = None) -> List[Path]:
    """
    Loadable survey files directly under the data directory, sorted by name.
    A missing directory simply yields no files.
    """
    root = Path(data_dir) if data_dir is not None else DATA_DIR
    if not root.is_dir():
        logger.debug("Data directory %s does not exist.", root)
        return []
    suffixes = CSV_SUFFIXES + EXCEL_SUFFIXES
    return sorted(p for p in root.iterdir() if p.is_file() and p.suffix.lower() in suffixes)
