from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.records import RawTable

"""Workbook reader producing RawTables.

The first row of every sheet is the header row, everything below it is data.
Cells are read as text with pandas' NA conversion turned off, so values such as
"NA" or "null" survive as typed; genuinely empty cells become "". Rows that
are entirely empty are dropped.

Supported sources: `.xlsx` workbooks (one RawTable per sheet) and `.csv` files
(one RawTable named after the file stem), or a directory holding them.
"""

__all__ = [
    "SourceError",
    "SUPPORTED_SUFFIXES",
    "frame_to_raw_table",
    "read_workbook",
    "load_source",
]

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".xlsx", ".csv")


class SourceError(Exception):
    """Raised when the configured source cannot be read."""


def _text(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def frame_to_raw_table(df: pd.DataFrame, name: str) -> RawTable:
    """Turn a header-less DataFrame into a RawTable (row 0 = headers)."""
    if df.shape[0] == 0:
        return RawTable(name=name, original_headers=(), rows=())
    headers = tuple(_text(c) for c in df.iloc[0].tolist())
    rows: list[tuple[str, ...]] = []
    for raw in df.iloc[1:].itertuples(index=False, name=None):
        cells = tuple(_text(c) for c in raw)
        if not any(cells):
            continue
        rows.append(cells)
    return RawTable(name=name, original_headers=headers, rows=tuple(rows))


def read_workbook(path: Path, sheets: Iterable[str] | None = None) -> list[RawTable]:
    """Read one `.xlsx` or `.csv` file.

    Parameters
    ----------
    path: workbook path
    sheets: restrict to these sheet names (None = every sheet); ignored for CSV
    """
    if not path.exists():
        raise SourceError(f"source not found: {path}")
    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            df = pd.read_csv(path, header=None, dtype=str, keep_default_na=False)
            return [frame_to_raw_table(df, path.stem)]
        if suffix == ".xlsx":
            wanted = set(sheets) if sheets is not None else None
            tables: list[RawTable] = []
            xls = pd.ExcelFile(path)
            for name in xls.sheet_names:
                if wanted is not None and str(name) not in wanted:
                    continue
                df = xls.parse(name, header=None, dtype=str, keep_default_na=False)
                tables.append(frame_to_raw_table(df, str(name)))
            if wanted is not None:
                missing = wanted - {t.name for t in tables}
                if missing:
                    logger.warning(f"{path.name}: sheets not found: {sorted(missing)}")
            return tables
    except pd.errors.EmptyDataError:
        return [RawTable(name=path.stem, original_headers=(), rows=())]
    except Exception as e:
        # corrupt archives surface as BadZipFile, KeyError or XML errors depending on the engine
        raise SourceError(f"cannot read {path}: {e}") from e
    raise SourceError(f"unsupported source type: {path.suffix or path.name}")


def load_source(path: Path, sheets: Iterable[str] | None = None) -> list[RawTable]:
    """Read a single workbook, or every supported file of a directory (sorted, non-recursive)."""
    if not path.exists():
        raise SourceError(f"source not found: {path}")
    if path.is_file():
        return read_workbook(path, sheets)
    sheet_list = list(sheets) if sheets is not None else None
    files = sorted(
        p for p in path.iterdir() if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES
    )
    tables: list[RawTable] = []
    for f in files:
        tables.extend(read_workbook(f, sheet_list))
    logger.debug(f"source {path}: {len(files)} files, {len(tables)} sheets")
    return tables
