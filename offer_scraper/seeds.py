"""
Seed URL loading from spreadsheets.
"""

import logging
from pathlib import Path
from typing import List, Union

import pandas as pd

logger = logging.getLogger(__name__)

URL_COLUMN = "URL"


class SeedFileError(ValueError):
    """Raised when a seed file exists but cannot be read as a spreadsheet."""

    pass


def load_seed_urls(path: Union[str, Path]) -> List[str]:
    """
    Read category URLs from a spreadsheet.

    Every sheet of an Excel workbook (or the single table of a CSV file) is
    scanned; each row with a non-empty ``URL`` cell contributes one URL.
    Sheets without a ``URL`` column are skipped.

    Args:
        path: Path to an .xlsx, .xls or .csv file.

    Returns:
        URLs in sheet order, then row order.

    Raises:
        FileNotFoundError: If the file does not exist.
        SeedFileError: If the file is not a readable spreadsheet.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Seed file not found: {path}")

    try:
        if path.suffix.lower() == ".csv":
            sheets = {path.stem: pd.read_csv(path, dtype=str)}
        else:
            # The reader (openpyxl or xlrd) is picked from the file content.
            sheets = pd.read_excel(path, sheet_name=None, dtype=str)
    except Exception as e:
        raise SeedFileError(f"Failed to read seed file {path}: {str(e)}") from e

    urls: List[str] = []
    for sheet_name, frame in sheets.items():
        if URL_COLUMN not in frame.columns:
            logger.debug(f"Sheet {sheet_name!r} has no {URL_COLUMN} column, skipping")
            continue
        for value in frame[URL_COLUMN].dropna():
            url = str(value).strip()
            if url:
                urls.append(url)

    logger.info(f"Loaded {len(urls)} seed URLs from {path}")
    return urls
