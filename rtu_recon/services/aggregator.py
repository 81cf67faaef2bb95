from __future__ import annotations

from collections.abc import Iterable, Sequence

from ..models.aggregation import Aggregation, Category, DashboardView, Filters, TrendPoint, empty_counts
from ..models.config_models import UserContext
from ..models.recon_result import ReconResult
from ..models.records import GroupKey, MergedRecord
from .date_extractor import format_date_iso

"""Aggregator: dashboard card counts and per-date trend series.

Counts are non-exclusive tallies; one record may land in several cards
(e.g. "Remote - Switch Issue" counts as REMOTE and SWITCH_ISSUE). Filters
are conjunctive; the trend ignores the date filter and buckets records by
ISO date.
"""

__all__ = [
    "categories_of",
    "matches_filters",
    "filter_records",
    "aggregate",
    "grouping_options",
    "latest_snapshot_date",
    "default_filters",
    "build_view",
]

EQUIPMENT_ROLE = "equipment"


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


def categories_of(record: MergedRecord) -> list[Category]:
    """Cards a record contributes to."""
    found: list[Category] = []
    device = _norm(record.device_status)
    if device == "online":
        found.append(Category.ONLINE)
    elif device == "offline":
        found.append(Category.OFFLINE)

    switch = _norm(record.equipment_switch_status)
    if "local" in switch:
        found.append(Category.LOCAL)
    if "remote" in switch:
        found.append(Category.REMOTE)
    if switch == "switchissue" or ("switch" in switch and "issue" in switch):
        found.append(Category.SWITCH_ISSUE)

    if "local" in _norm(record.rtu_switch_status):
        found.append(Category.RTU_LOCAL)
    return found


def matches_filters(record: MergedRecord, filters: Filters, *, use_date: bool = True) -> bool:
    """True when the record satisfies every active filter."""
    for key, wanted in filters.grouping().items():
        if _norm(record.grouping_value(key)) != _norm(wanted):
            return False
    if use_date and filters.date:
        if record.date is None or format_date_iso(record.date) != filters.date.strip():
            return False
    return True


def filter_records(records: Iterable[MergedRecord], filters: Filters) -> list[MergedRecord]:
    return [r for r in records if matches_filters(r, filters)]


def _count(records: Iterable[MergedRecord]) -> dict[Category, int]:
    counts = empty_counts()
    for record in records:
        for category in categories_of(record):
            counts[category] += 1
    return counts


def aggregate(records: Sequence[MergedRecord], filters: Filters | None = None) -> Aggregation:
    """Compute card counts and the trend series for a filter selection.

    Args:
        records: Merged records of one reconciliation run
        filters: Active filters (None = no filtering)

    Returns:
        Aggregation with counts over the fully filtered records and a trend
        over records filtered by grouping columns only, sorted by date.
    """
    filters = filters or Filters()
    counts = _count(r for r in records if matches_filters(r, filters))

    buckets: dict[str, dict[Category, int]] = {}
    for record in records:
        if record.date is None or not matches_filters(record, filters, use_date=False):
            continue
        bucket = buckets.setdefault(format_date_iso(record.date), empty_counts())
        for category in categories_of(record):
            bucket[category] += 1
    trend = [TrendPoint(date=d, by_category=buckets[d]) for d in sorted(buckets)]
    return Aggregation(counts=counts, trend=trend)


def grouping_options(records: Iterable[MergedRecord]) -> dict[GroupKey, list[str]]:
    """Distinct non-empty values per grouping column, sorted ascending."""
    values: dict[GroupKey, set[str]] = {key: set() for key in GroupKey}
    for record in records:
        for key in GroupKey:
            value = record.grouping_value(key).strip()
            if value:
                values[key].add(value)
    return {key: sorted(v) for key, v in values.items()}


def latest_snapshot_date(records: Iterable[MergedRecord]) -> str | None:
    keys = [format_date_iso(r.date) for r in records if r.date is not None]
    return max(keys) if keys else None


def default_filters(records: Sequence[MergedRecord], user: UserContext | None = None) -> Filters:
    """Initial filter selection for a user.

    The date defaults to the latest snapshot. Equipment users start on their
    first registered division when the data contains it; CCR users and
    everyone else get no division default.
    """
    division: str | None = None
    if user is not None and _norm(user.role) == EQUIPMENT_ROLE and user.divisions:
        wanted = _norm(user.divisions[0])
        for option in grouping_options(records)[GroupKey.DIVISION]:
            if _norm(option) == wanted:
                division = option
                break
    return Filters(division=division, date=latest_snapshot_date(records))


def build_view(result: ReconResult, filters: Filters) -> DashboardView:
    """Everything the presentation layer shows for one filter selection."""
    aggregation = aggregate(result.records, filters)
    return DashboardView(
        filters=filters,
        counts=aggregation.counts,
        trend=aggregation.trend,
        options=result.options,
        record_count=len(filter_records(result.records, filters)),
        latest_date=latest_snapshot_date(result.records),
    )
