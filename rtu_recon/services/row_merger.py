from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Sequence
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from ..models.headers import HeaderRole, ResolvedDataset
from ..models.records import GroupKey, MergedRecord, MergeOutcome, MergeStats
from .date_extractor import format_date_iso, parse_date
from .header_resolver import normalize_header

"""Row merger: combine the device-status dataset with snapshot datasets.

Secondary (snapshot) datasets produce candidate records, one per row or one
per row and snapshot-date column. Candidates are deduplicated on
(site code, ISO date) with a first-wins policy, then joined with the primary
device-status row of the same site code:

* device status / equipment switch status: a non-empty primary value wins
* RTU switch status, days offline, grouping values: primary fills gaps only
* every other primary column is copied where the record has no value yet

The primary dataset is indexed by site code once per run so the merge stays
linear in the number of rows.
"""

__all__ = [
    "MissingBindingError",
    "NO_DATE_KEY",
    "cell_text",
    "dedup_key",
    "merge",
    "enrich_with_tracker",
    "tracker_columns",
]

logger = logging.getLogger(__name__)

NO_DATE_KEY = "∅"

_GROUP_ROLES: tuple[tuple[GroupKey, HeaderRole], ...] = (
    (GroupKey.CIRCLE, HeaderRole.CIRCLE),
    (GroupKey.DIVISION, HeaderRole.DIVISION),
    (GroupKey.SUB_DIVISION, HeaderRole.SUB_DIVISION),
)


class MissingBindingError(Exception):
    """Raised when a dataset that must be merged has no site code column."""

    def __init__(self, dataset: str, role: HeaderRole = HeaderRole.SITE_CODE):
        super().__init__(f"dataset '{dataset}' has no {role.value} column")
        self.dataset = dataset
        self.role = role


def cell_text(value: Any) -> str:
    """Render a cell as trimmed text (blank / NaN -> "", 5.0 -> "5")."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return format_date_iso(value)
    return str(value).strip()


def dedup_key(site_code: str, d: date | None) -> tuple[str, str]:
    return site_code.strip(), NO_DATE_KEY if d is None else format_date_iso(d)


def _read(row: dict[str, Any], column: str | None) -> str:
    if column is None:
        return ""
    return cell_text(row.get(column))


def _grouping(row: dict[str, Any], source: ResolvedDataset) -> dict[GroupKey, str]:
    values: dict[GroupKey, str] = {}
    for key, role in _GROUP_ROLES:
        text = _read(row, source.headers.get(role))
        if text:
            values[key] = text
    return values


def _build(row: dict[str, Any], source: ResolvedDataset, site_code: str, d: date | None) -> MergedRecord:
    h = source.headers
    return MergedRecord(
        site_code=site_code,
        date=d,
        device_status=_read(row, h.get(HeaderRole.DEVICE_STATUS)),
        equipment_switch_status=_read(row, h.get(HeaderRole.SWITCH_STATUS_EQUIPMENT)),
        rtu_switch_status=_read(row, h.get(HeaderRole.SWITCH_STATUS_RTU)),
        days_offline=_read(row, h.get(HeaderRole.DAYS_OFFLINE)),
        grouping_values=_grouping(row, source),
        source_row=dict(row),
        origin=source.name,
    )


class _Counters:
    def __init__(self) -> None:
        self.candidates = 0
        self.skipped_no_site_code = 0
        self.unparsed_dates = 0


def _candidates(source: ResolvedDataset, counters: _Counters) -> Iterator[MergedRecord]:
    """Unpack one dataset's rows into candidate records in row order."""
    h = source.headers
    site_col = h.site_code
    if site_col is None:
        return
    for row in source.dataset.rows:
        site_code = _read(row, site_col)
        if not site_code:
            counters.skipped_no_site_code += 1
            continue
        if h.date_columns:
            for d in h.date_columns.values():
                counters.candidates += 1
                yield _build(row, source, site_code, d)
        elif h.date_single is not None:
            raw = row.get(h.date_single)
            d = parse_date(raw)
            if d is None and cell_text(raw):
                counters.unparsed_dates += 1
            counters.candidates += 1
            yield _build(row, source, site_code, d)
        else:
            counters.candidates += 1
            yield _build(row, source, site_code, None)


def _index_primary(primary: ResolvedDataset) -> dict[str, dict[str, Any]]:
    site_col = primary.headers.site_code
    index: dict[str, dict[str, Any]] = {}
    for row in primary.dataset.rows:
        site_code = _read(row, site_col)
        if site_code:
            # Later rows replace earlier ones for the same site code
            index[site_code] = row
    return index


def _join(
    record: MergedRecord,
    primary_row: dict[str, Any],
    primary: ResolvedDataset,
    source: ResolvedDataset,
) -> MergedRecord:
    h = primary.headers
    primary_status = _read(primary_row, h.get(HeaderRole.DEVICE_STATUS))
    primary_equipment = _read(primary_row, h.get(HeaderRole.SWITCH_STATUS_EQUIPMENT))
    device_status = primary_status or record.device_status
    equipment = primary_equipment or record.equipment_switch_status
    rtu = record.rtu_switch_status or _read(primary_row, h.get(HeaderRole.SWITCH_STATUS_RTU))
    days = record.days_offline or _read(primary_row, h.get(HeaderRole.DAYS_OFFLINE))

    grouping = dict(record.grouping_values)
    for key, value in _grouping(primary_row, primary).items():
        if not grouping.get(key):
            grouping[key] = value

    source_row = dict(record.source_row)
    for column, value in primary_row.items():
        if cell_text(source_row.get(column)) == "":
            source_row[column] = value
    # Winning primary values go under both datasets' column names
    for role, value in (
        (HeaderRole.DEVICE_STATUS, primary_status),
        (HeaderRole.SWITCH_STATUS_EQUIPMENT, primary_equipment),
    ):
        if not value:
            continue
        for column in (h.get(role), source.headers.get(role)):
            if column is not None:
                source_row[column] = value

    return replace(
        record,
        device_status=device_status,
        equipment_switch_status=equipment,
        rtu_switch_status=rtu,
        days_offline=days,
        grouping_values=grouping,
        source_row=source_row,
    )


def merge(primary: ResolvedDataset, secondaries: Sequence[ResolvedDataset] = ()) -> MergeOutcome:
    """Merge snapshot datasets with the primary device-status dataset.

    Args:
        primary: Device-status dataset with resolved headers
        secondaries: Snapshot datasets in precedence order (earlier wins on
            duplicate (site code, date) keys)

    Returns:
        MergeOutcome with records in first-seen order and merge counters.

    Raises:
        MissingBindingError: If the primary dataset has no site code column.
    """
    if primary.headers.site_code is None:
        raise MissingBindingError(primary.name)

    skipped: list[str] = []
    contributing: list[ResolvedDataset] = []
    for secondary in secondaries:
        if secondary.headers.site_code is None:
            logger.warning("dataset '%s' skipped: no site code column", secondary.name)
            skipped.append(secondary.name)
            continue
        contributing.append(secondary)

    primary_as_source = not contributing
    if primary_as_source:
        logger.warning("no snapshot dataset contributed; using device-status rows as records")
        contributing = [primary]

    index = _index_primary(primary)
    counters = _Counters()
    seen: set[tuple[str, str]] = set()
    records: list[MergedRecord] = []
    duplicates = 0
    joined = 0

    for source in contributing:
        for candidate in _candidates(source, counters):
            key = dedup_key(candidate.site_code, candidate.date)
            if key in seen:
                duplicates += 1
                continue
            seen.add(key)
            primary_row = index.get(candidate.site_code)
            if primary_row is not None:
                joined += 1
                if source is not primary:
                    candidate = _join(candidate, primary_row, primary, source)
            records.append(candidate)

    stats = MergeStats(
        candidates=counters.candidates,
        kept=len(records),
        duplicates=duplicates,
        skipped_no_site_code=counters.skipped_no_site_code,
        unparsed_dates=counters.unparsed_dates,
        joined_with_primary=joined,
        skipped_datasets=tuple(skipped),
        primary_as_source=primary_as_source,
    )
    logger.debug(
        "merge done candidates=%d kept=%d duplicates=%d skipped_rows=%d",
        stats.candidates, stats.kept, stats.duplicates, stats.skipped_no_site_code,
    )
    return MergeOutcome(records=records, stats=stats)


def _is_tracker_observation(n: str) -> bool:
    if n in ("rtu tracker observation", "rtu tracker obserbation"):
        return True
    return "rtu" in n and "tracker" in n and ("observation" in n or "obserbation" in n)


def tracker_columns(tracker: ResolvedDataset) -> tuple[str | None, list[str]]:
    """Pick the tracker's latest snapshot column and the data columns after it.

    Returns:
        (latest date column or None, columns to copy onto merged records).
        Without any snapshot column the copy starts after the site code.
    """
    headers = tracker.dataset.unique_headers
    site_col = tracker.headers.site_code
    latest_col: str | None = None
    if tracker.headers.date_columns:
        latest_col = max(tracker.headers.date_columns.items(), key=lambda kv: format_date_iso(kv[1]))[0]
    anchor = latest_col if latest_col is not None else site_col
    if anchor is None or anchor not in headers:
        return latest_col, []

    columns: list[str] = []
    for header in headers[headers.index(anchor) + 1:]:
        n = normalize_header(header)
        if header == site_col or n in ("site code", "sitecode"):
            continue
        if "date" in n or "time" in n:
            continue
        if _is_tracker_observation(n):
            continue
        columns.append(header)
    return latest_col, columns


def enrich_with_tracker(
    records: Sequence[MergedRecord], tracker: ResolvedDataset
) -> tuple[list[MergedRecord], int]:
    """Copy RTU tracker columns onto merged records by site code.

    Only tracker rows with a value in the latest snapshot column take part.
    Unmatched records receive empty strings for the tracker columns so that
    every record exposes the same column set.

    Returns:
        (new record list, number of records that found a tracker row)
    """
    site_col = tracker.headers.site_code
    if site_col is None:
        logger.warning("RTU tracker '%s' has no site code column; enrichment skipped", tracker.name)
        return list(records), 0

    latest_col, columns = tracker_columns(tracker)
    if not columns:
        logger.info("RTU tracker '%s' has no columns to copy", tracker.name)
        return list(records), 0

    index: dict[str, dict[str, Any]] = {}
    for row in tracker.dataset.rows:
        if latest_col is not None and not _read(row, latest_col):
            continue
        site_code = _read(row, site_col)
        if site_code and site_code not in index:
            index[site_code] = row

    enriched: list[MergedRecord] = []
    matches = 0
    for record in records:
        match = index.get(record.site_code)
        if match is not None:
            matches += 1
        source_row = dict(record.source_row)
        for column in columns:
            source_row[column] = _read(match, column) if match is not None else ""
        enriched.append(replace(record, source_row=source_row))
    return enriched, matches
