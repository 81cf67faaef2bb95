from __future__ import annotations

import io
import math
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..models.dataset import Dataset

"""Spreadsheet reader: uploaded .xlsx / .csv files -> Dataset.

The first sheet is read without a header, the configured row (0-based,
default 0) becomes the header row and every following non-blank row becomes
a row record. Cells are converted to plain Python values:

- NaN / NaT -> None
- numpy scalars -> int / float / bool
- Timestamps -> datetime

Headers that the spreadsheet stored as real dates are rendered DD-MM-YYYY so
they read like the text date headers of the snapshot uploads.
"""

__all__ = [
    "ReadError",
    "SUPPORTED_SUFFIXES",
    "read_dataset",
    "frame_to_dataset",
    "to_python",
]

SUPPORTED_SUFFIXES = (".xlsx", ".csv")


class ReadError(Exception):
    """Raised when an uploaded file cannot be read into a dataset."""


def to_python(value: Any) -> Any:
    """Convert a pandas / numpy cell to a plain Python value."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return pd.Timestamp(value).to_pydatetime()
    if isinstance(value, np.generic):
        value = value.item()
        if isinstance(value, float) and math.isnan(value):
            return None
    return value


def _header_text(value: Any) -> str:
    value = to_python(value)
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%d-%m-%Y")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def frame_to_dataset(df: pd.DataFrame, name: str, header_row: int = 0) -> Dataset:
    """Build a Dataset from a raw (header-less) DataFrame.

    Raises:
        ReadError: If the frame has no row at ``header_row``.
    """
    if df.shape[0] <= header_row:
        raise ReadError(f"'{name}' has no header row at index {header_row}")

    headers = [_header_text(v) for v in df.iloc[header_row].tolist()]
    keep = [i for i, h in enumerate(headers) if h]
    columns = [headers[i] for i in keep]

    rows: list[dict[str, Any]] = []
    for values in df.iloc[header_row + 1:].itertuples(index=False, name=None):
        cells = [to_python(values[i]) for i in keep]
        if all(c is None or (isinstance(c, str) and c.strip() == "") for c in cells):
            continue
        row: dict[str, Any] = {}
        for column, cell in zip(columns, cells, strict=True):
            # Duplicate header names: first column wins
            if column not in row:
                row[column] = cell
        rows.append(row)
    return Dataset(name=name, headers=columns, rows=rows)


def read_dataset(
    source: Path | bytes,
    name: str | None = None,
    *,
    header_row: int = 0,
    suffix: str | None = None,
) -> Dataset:
    """Read the first sheet of an uploaded file.

    Args:
        source: File path, or the raw file content
        name: Dataset name (defaults to the file name)
        header_row: 0-based row holding the headers
        suffix: File type for byte content (".xlsx" or ".csv"); taken from
            the path or name otherwise

    Raises:
        ReadError: If the file type is unsupported or the file cannot be parsed.
    """
    if isinstance(source, Path):
        name = name or source.name
        suffix = suffix or source.suffix
        handle: Any = source
    else:
        name = name or "<upload>"
        suffix = suffix or Path(name).suffix
        handle = io.BytesIO(source)

    suffix = (suffix or "").lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ReadError(f"unsupported file type '{suffix}' for '{name}'")

    try:
        if suffix == ".csv":
            df = pd.read_csv(handle, header=None, dtype=object, keep_default_na=True)
        else:
            df = pd.read_excel(handle, sheet_name=0, header=None)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        raise ReadError(f"failed to read '{name}': {e}") from e
    return frame_to_dataset(df, name, header_row=header_row)
