from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

"""Merged record models.

A MergedRecord is one (site code, snapshot date) entry after the row merger
combined the snapshot datasets with the device-status dataset. Records are
never mutated; enrichment produces new instances.
"""

__all__ = [
    "GroupKey",
    "MergedRecord",
    "MergeStats",
    "MergeOutcome",
]


class GroupKey(Enum):
    """Grouping columns used for dashboard filters."""
    CIRCLE = "circle"
    DIVISION = "division"
    SUB_DIVISION = "sub_division"


@dataclass(frozen=True)
class MergedRecord:
    """One reconciled site entry (unique on site_code + date within a run)."""
    site_code: str  # Trimmed, never empty
    date: date | None  # None = undated, excluded from date-filtered views
    device_status: str = ""
    equipment_switch_status: str = ""
    rtu_switch_status: str = ""
    days_offline: str = ""
    grouping_values: dict[GroupKey, str] = field(default_factory=dict)
    source_row: dict[str, Any] = field(default_factory=dict)  # Merged raw columns
    origin: str = ""  # Dataset that produced the candidate

    def grouping_value(self, key: GroupKey) -> str:
        return self.grouping_values.get(key, "")


@dataclass(frozen=True)
class MergeStats:
    """Counters describing one merge run (diagnostics only)."""
    candidates: int = 0  # Candidate records produced from snapshot rows
    kept: int = 0  # Records surviving deduplication
    duplicates: int = 0  # Candidates dropped by first-wins dedup
    skipped_no_site_code: int = 0  # Rows without a site code value
    unparsed_dates: int = 0  # Non-empty DATE cells that did not parse (record kept undated)
    joined_with_primary: int = 0  # Kept records that found a primary row
    skipped_datasets: tuple[str, ...] = ()  # Secondaries excluded (no site code binding)
    primary_as_source: bool = False  # No secondary contributed; primary rows used


@dataclass(frozen=True)
class MergeOutcome:
    records: list[MergedRecord]
    stats: MergeStats
