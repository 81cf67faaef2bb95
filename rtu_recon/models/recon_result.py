from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..services.date_extractor import format_date_iso
from .headers import HeaderRole
from .records import GroupKey, MergedRecord, MergeStats

"""Pipeline result models.

ReconResult is the immutable outcome of one reconciliation run. Each run
builds a brand-new instance; the previous one is simply discarded by the
caller (see services/publisher.py).
"""

__all__ = [
    "DatasetRole",
    "DatasetStat",
    "ReconResult",
]


class DatasetRole(Enum):
    """Role an uploaded file plays in a reconciliation run."""
    DEVICE_STATUS = "device_status"  # Primary dataset (user edits)
    ONLINE_OFFLINE = "online_offline"  # Snapshot-per-date secondary
    RTU_TRACKER = "rtu_tracker"  # Enrichment secondary


@dataclass(frozen=True)
class DatasetStat:
    """Per-dataset participation in a run."""
    role: DatasetRole
    file_name: str | None  # None when no file matched the role
    status: str  # used / absent / fetch_failed / skipped
    rows: int = 0
    unresolved_roles: tuple[HeaderRole, ...] = ()


@dataclass(frozen=True)
class ReconResult:
    """Aggregated outcome of one reconciliation run."""
    run_id: int
    records: list[MergedRecord]
    options: dict[GroupKey, list[str]]
    merge_stats: MergeStats
    dataset_stats: list[DatasetStat] = field(default_factory=list)
    tracker_matches: int = 0  # Records enriched with RTU tracker columns
    start_time: datetime | None = None
    end_time: datetime | None = None
    elapsed_seconds: float = 0.0

    @property
    def degraded(self) -> bool:
        """True when an optional dataset could not take part in the run."""
        if self.merge_stats.primary_as_source or self.merge_stats.skipped_datasets:
            return True
        return any(s.status in ("fetch_failed", "skipped") for s in self.dataset_stats)

    @property
    def datasets_used(self) -> int:
        return sum(1 for s in self.dataset_stats if s.status == "used")

    @property
    def datasets_selected(self) -> int:
        return sum(1 for s in self.dataset_stats if s.file_name is not None)

    @property
    def distinct_dates(self) -> int:
        return len({format_date_iso(r.date) for r in self.records if r.date is not None})
