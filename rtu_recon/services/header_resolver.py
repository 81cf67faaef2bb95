from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from datetime import date
from typing import Any

from ..models.dataset import Dataset
from ..models.headers import HeaderRole, ResolvedDataset, ResolvedHeaders
from .date_extractor import format_date_iso, parse_date, parse_header_date

"""Header resolution: bind dataset columns to semantic roles.

Uploads are hand-maintained spreadsheets, so column names drift in case,
spacing and separators ("SITE CODE", "site_code", " rtu l/r  switch_status ").
Every header is normalized once and each role is tried against an ordered
list of predicates; the first header satisfying a role wins and a header is
never bound to two roles.

Snapshot-per-date columns are detected from the header text. When no header
carries a date at all, a fallback scan looks at the first rows' cell values
and promotes columns that converge on one dominant date.
"""

__all__ = [
    "DEFAULT_SAMPLE_ROWS",
    "DEFAULT_MIN_DOMINANT_COUNT",
    "normalize_header",
    "resolve",
    "resolve_dataset",
]

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_ROWS = 50
DEFAULT_MIN_DOMINANT_COUNT = 5

_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_header(header: Any) -> str:
    """Trim, lower-case and collapse whitespace / ``-`` / ``_`` runs to one space."""
    if header is None:
        return ""
    return _SEPARATORS.sub(" ", str(header).strip().lower()).strip()


def _has_lr(n: str) -> bool:
    return "l/r" in n or "lr" in n or "l r" in n


def _is_site_code(n: str) -> bool:
    return n in ("site code", "sitecode")


def _is_date_single(n: str) -> bool:
    return n == "date"


def _is_rtu_switch(n: str) -> bool:
    if n == "rtu l/r switch status":
        return True
    return "rtu" in n and _has_lr(n) and ("switch" in n or "status" in n)


def _is_equipment_switch(n: str) -> bool:
    if n in (
        "equipment l/r switch status",
        "equipmentl/r switch status",
        "equipmentl/rswitchstatus",
        "equipemnt l/r switch status",
    ):
        return True
    if n.startswith(("equipment l/r switch status", "equipemnt l/r switch status")):
        return True
    if any(tok in n for tok in ("equipment", "equipemnt", "equip", "eqpt")):
        if _has_lr(n) and ("switch" in n or "status" in n):
            return True
    # L/R switch status column without an equipment prefix
    return "rtu" not in n and _has_lr(n) and "switch" in n and "status" in n


def _is_device_status(n: str) -> bool:
    if n in ("device status", "devicestatus"):
        return True
    return "device" in n and "status" in n


def _is_days_offline(n: str) -> bool:
    if n in ("no of days offline", "noofdaysoffline"):
        return True
    return "day" in n and "offline" in n


def _is_division(n: str) -> bool:
    return n == "division"


def _is_sub_division(n: str) -> bool:
    return n in ("sub division", "subdivision")


def _is_circle(n: str) -> bool:
    return n in ("circle", "circle name", "circlename")


# Fixed resolution order. DATE_PER_COLUMN is handled in between (see resolve()).
_PRE_DATE_ROLES: list[tuple[HeaderRole, Callable[[str], bool]]] = [
    (HeaderRole.SITE_CODE, _is_site_code),
    (HeaderRole.DATE_SINGLE, _is_date_single),
]
_POST_DATE_ROLES: list[tuple[HeaderRole, Callable[[str], bool]]] = [
    (HeaderRole.SWITCH_STATUS_RTU, _is_rtu_switch),
    (HeaderRole.SWITCH_STATUS_EQUIPMENT, _is_equipment_switch),
    (HeaderRole.DEVICE_STATUS, _is_device_status),
    (HeaderRole.DAYS_OFFLINE, _is_days_offline),
    (HeaderRole.DIVISION, _is_division),
    (HeaderRole.SUB_DIVISION, _is_sub_division),
    (HeaderRole.CIRCLE, _is_circle),
]


def _dedupe(headers: Sequence[Any]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for h in headers:
        if h is None:
            continue
        name = str(h)
        if name in seen:
            continue
        seen.add(name)
        out.append(name)
    return out


def _bind_roles(
    normalized: list[tuple[str, str]],
    roles: list[tuple[HeaderRole, Callable[[str], bool]]],
    columns: dict[HeaderRole, str],
    claimed: set[str],
) -> None:
    for role, predicate in roles:
        for raw, n in normalized:
            if raw in claimed:
                continue
            if predicate(n):
                columns[role] = raw
                claimed.add(raw)
                break


def _scan_cell_dates(
    headers: list[str],
    rows: Sequence[Mapping[str, Any]],
    claimed: set[str],
    sample_rows: int,
    min_dominant_count: int,
) -> dict[str, date]:
    """Find columns whose sampled cell values converge on one date."""
    sample = list(rows[:sample_rows])
    found: dict[str, date] = {}
    if not sample:
        return found
    for header in headers:
        if header in claimed:
            continue
        non_empty = 0
        parsed: Counter[str] = Counter()
        by_key: dict[str, date] = {}
        for row in sample:
            value = row.get(header)
            if value is None or (isinstance(value, str) and value.strip() == ""):
                continue
            non_empty += 1
            d = parse_date(value, date_column=False)
            if d is None:
                continue
            key = format_date_iso(d)
            parsed[key] += 1
            by_key[key] = d
        total_parsed = sum(parsed.values())
        if non_empty == 0 or total_parsed * 2 <= non_empty:
            continue
        dominant, count = parsed.most_common(1)[0]
        if count * 2 > total_parsed and count >= min_dominant_count:
            found[header] = by_key[dominant]
    return found


def resolve(
    headers: Sequence[Any],
    rows: Sequence[Mapping[str, Any]] | None = None,
    *,
    sample_rows: int = DEFAULT_SAMPLE_ROWS,
    min_dominant_count: int = DEFAULT_MIN_DOMINANT_COUNT,
) -> ResolvedHeaders:
    """Bind headers to semantic roles.

    Args:
        headers: Column names in sheet order (duplicates are ignored)
        rows: Data rows, only needed for the cell-value date scan
        sample_rows: Number of leading rows the date scan inspects
        min_dominant_count: Minimum occurrences of the dominant date for a
            column to be promoted by the scan

    Returns:
        ResolvedHeaders. Missing roles are simply absent; callers decide
        whether an absent role matters.
    """
    unique = _dedupe(headers)
    normalized = [(raw, normalize_header(raw)) for raw in unique]
    columns: dict[HeaderRole, str] = {}
    claimed: set[str] = set()

    _bind_roles(normalized, _PRE_DATE_ROLES, columns, claimed)

    date_columns: dict[str, date] = {}
    for raw, _ in normalized:
        if raw in claimed:
            continue
        d = parse_header_date(raw)
        if d is not None:
            date_columns[raw] = d
            claimed.add(raw)

    _bind_roles(normalized, _POST_DATE_ROLES, columns, claimed)

    inferred = False
    if not date_columns and HeaderRole.DATE_SINGLE not in columns and rows:
        date_columns = _scan_cell_dates(unique, rows, claimed, sample_rows, min_dominant_count)
        inferred = bool(date_columns)
        if inferred:
            logger.debug(
                "date columns inferred from cell values: %s",
                {h: format_date_iso(d) for h, d in date_columns.items()},
            )

    return ResolvedHeaders(columns=columns, date_columns=date_columns, inferred_date_columns=inferred)


def resolve_dataset(
    dataset: Dataset,
    *,
    sample_rows: int = DEFAULT_SAMPLE_ROWS,
    min_dominant_count: int = DEFAULT_MIN_DOMINANT_COUNT,
) -> ResolvedDataset:
    """Resolve a dataset's headers and pair the bindings with the dataset."""
    headers = resolve(
        dataset.headers,
        dataset.rows,
        sample_rows=sample_rows,
        min_dominant_count=min_dominant_count,
    )
    return ResolvedDataset(dataset=dataset, headers=headers)
