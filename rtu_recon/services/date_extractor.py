from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

"""Date extraction for uploaded dataset cells and headers.

Three encodings show up in the uploads:

* explicit date strings, day-first (``17-11-2025``, ``17/11/2025``) or
  year-first (``2025-11-17``)
* spreadsheet serial day numbers (``45978``)
* dates embedded in column headers, one snapshot per column

``parse_date`` is total: anything it cannot read becomes ``None``. All date
comparisons in the pipeline go through ``format_date_iso`` keys, never raw
date objects.
"""

__all__ = [
    "MIN_YEAR",
    "MAX_YEAR",
    "parse_date",
    "parse_header_date",
    "serial_to_date",
    "format_date_iso",
]

MIN_YEAR = 1900
MAX_YEAR = 2100

SERIAL_EPOCH = date(1899, 12, 30)
_SERIAL_MAX = 1_000_000
# Serial window used when the cell is not known to hold a date
_LOOSE_SERIAL_MIN = 10_000
_LOOSE_SERIAL_MAX = 100_000

_SEP = r"[-/.]"
_DMY_PREFIX = re.compile(rf"^\s*(\d{{1,2}}){_SEP}(\d{{1,2}}){_SEP}(\d{{4}})(?!\d)")
_YMD_PREFIX = re.compile(rf"^\s*(\d{{4}}){_SEP}(\d{{1,2}}){_SEP}(\d{{1,2}})(?!\d)")
_DMY_FULL = re.compile(rf"^(\d{{1,2}}){_SEP}(\d{{1,2}}){_SEP}(\d{{4}})$")
_YMD_FULL = re.compile(rf"^(\d{{4}}){_SEP}(\d{{1,2}}){_SEP}(\d{{1,2}})$")
_DMY_EMBEDDED = re.compile(rf"(?<!\d)(\d{{1,2}}){_SEP}(\d{{1,2}}){_SEP}(\d{{4}})(?!\d)")
_YMD_EMBEDDED = re.compile(rf"(?<!\d)(\d{{4}}){_SEP}(\d{{1,2}}){_SEP}(\d{{1,2}})(?!\d)")
_NUMERIC = re.compile(r"^[+]?\d+(\.\d+)?$")

_TEXTUAL_FORMATS = (
    "%d %b %Y",
    "%d-%b-%Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%B %d, %Y",
)


def _in_range(d: date) -> bool:
    return MIN_YEAR <= d.year <= MAX_YEAR


def _build(year: int, month: int, day: int) -> date | None:
    """Return the calendar date only if it round-trips (rejects 31-02-2025)."""
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    try:
        d = date(year, month, day)
    except ValueError:
        return None
    if (d.day, d.month, d.year) != (day, month, year):
        return None
    return d if _in_range(d) else None


def serial_to_date(serial: float) -> date | None:
    """Convert a spreadsheet serial day count to a calendar date.

    Days are counted from 1899-12-30 so that serial 60 lands on 1900-02-28
    and serial 61 on 1900-03-01; the fictitious 1900-02-29 never appears.
    Fractions (time of day) are dropped. No year range check is applied
    here; see ``parse_date``.
    """
    if isinstance(serial, bool) or not math.isfinite(serial):
        return None
    if not (0 < serial < _SERIAL_MAX):
        return None
    try:
        return SERIAL_EPOCH + timedelta(days=int(serial))
    except OverflowError:
        return None


def _is_blank(raw: Any) -> bool:
    if raw is None or raw is pd.NaT:
        return True
    if isinstance(raw, float) and math.isnan(raw):
        return True
    return isinstance(raw, str) and raw.strip() == ""


def _from_serial(value: float, date_column: bool) -> date | None:
    if not date_column and not (_LOOSE_SERIAL_MIN < value < _LOOSE_SERIAL_MAX):
        return None
    d = serial_to_date(value)
    if d is None or not _in_range(d):
        return None
    return d


def _generic(text: str) -> date | None:
    candidate = text.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        d = datetime.fromisoformat(candidate).date()
    except ValueError:
        d = None
    if d is None:
        for fmt in _TEXTUAL_FORMATS:
            try:
                d = datetime.strptime(text.strip(), fmt).date()
                break
            except ValueError:
                continue
    if d is None or not _in_range(d):
        return None
    return d


def parse_date(raw: Any, *, date_column: bool = True) -> date | None:
    """Determine the calendar date a cell value represents.

    Args:
        raw: Cell value (str, int/float, date/datetime, pandas Timestamp or None)
        date_column: True when the value comes from a column known to hold
            dates. Otherwise numbers only count as serials inside
            (10000, 100000) so that plain counts and years are not misread.

    Returns:
        The calendar date, or None when nothing matches or the year falls
        outside [1900, 2100].
    """
    if _is_blank(raw) or isinstance(raw, bool):
        return None

    if isinstance(raw, datetime):
        d = raw.date()
        return d if _in_range(d) else None
    if isinstance(raw, date):
        return raw if _in_range(raw) else None

    if isinstance(raw, numbers.Real):
        return _from_serial(float(raw), date_column)

    text = str(raw).strip()

    m = _DMY_PREFIX.match(text)
    if m:
        d = _build(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        if d is not None:
            return d

    m = _YMD_PREFIX.match(text)
    if m:
        d = _build(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if d is not None:
            return d

    if _NUMERIC.match(text):
        return _from_serial(float(text), date_column)

    return _generic(text)


def parse_header_date(header: Any) -> date | None:
    """Read the snapshot date a column header stands for.

    The whole header is tried first (``17-11-2025``, ``2025/11/17``), then a
    date embedded anywhere in it (``DATE 17.11.2025``). Serial numbers are
    never accepted for headers.
    """
    if _is_blank(header):
        return None
    if isinstance(header, (datetime, date)):
        return parse_date(header)
    text = str(header).strip()

    m = _DMY_FULL.match(text)
    if m:
        return _build(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    m = _YMD_FULL.match(text)
    if m:
        return _build(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    for pattern, order in ((_DMY_EMBEDDED, (3, 2, 1)), (_YMD_EMBEDDED, (1, 2, 3))):
        for m in pattern.finditer(text):
            y, mo, dd = (int(m.group(i)) for i in order)
            d = _build(y, mo, dd)
            if d is not None:
                return d
    return None


def format_date_iso(d: date | None) -> str:
    """Render ``YYYY-MM-DD`` without timezone conversion; None -> ""."""
    if d is None:
        return ""
    if isinstance(d, datetime):
        d = d.date()
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"
