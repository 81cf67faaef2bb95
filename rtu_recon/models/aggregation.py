from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .records import GroupKey

"""Aggregation models: dashboard card categories, filters and trend points."""

__all__ = [
    "Category",
    "Filters",
    "TrendPoint",
    "Aggregation",
    "DashboardView",
]


class Category(Enum):
    """Dashboard card categories. Tallies are not a partition."""
    ONLINE = "online"
    OFFLINE = "offline"
    LOCAL = "local"
    REMOTE = "remote"
    SWITCH_ISSUE = "switch_issue"
    RTU_LOCAL = "rtu_local"


def empty_counts() -> dict[Category, int]:
    return {c: 0 for c in Category}


@dataclass(frozen=True)
class Filters:
    """Active filter selection. Empty / None values are not applied."""
    circle: str | None = None
    division: str | None = None
    sub_division: str | None = None
    date: str | None = None  # ISO YYYY-MM-DD

    def grouping(self) -> dict[GroupKey, str]:
        """Grouping filters that are actually set."""
        selected = {
            GroupKey.CIRCLE: self.circle,
            GroupKey.DIVISION: self.division,
            GroupKey.SUB_DIVISION: self.sub_division,
        }
        return {k: v for k, v in selected.items() if v is not None and str(v).strip() != ""}


@dataclass(frozen=True)
class TrendPoint:
    date: str  # ISO YYYY-MM-DD
    by_category: dict[Category, int] = field(default_factory=empty_counts)


@dataclass(frozen=True)
class Aggregation:
    counts: dict[Category, int]
    trend: list[TrendPoint]


@dataclass(frozen=True)
class DashboardView:
    """Everything the presentation layer needs for one filter selection."""
    filters: Filters
    counts: dict[Category, int]
    trend: list[TrendPoint]
    options: dict[GroupKey, list[str]]
    record_count: int  # Records passing the filters
    latest_date: str | None = None

    def to_dict(self) -> dict[str, object]:
        """JSON-friendly representation (enum keys rendered by value)."""
        return {
            "filters": {
                "circle": self.filters.circle,
                "division": self.filters.division,
                "sub_division": self.filters.sub_division,
                "date": self.filters.date,
            },
            "counts": {c.value: n for c, n in self.counts.items()},
            "trend": [
                {"date": p.date, **{c.value: n for c, n in p.by_category.items()}}
                for p in self.trend
            ],
            "options": {k.value: list(v) for k, v in self.options.items()},
            "record_count": self.record_count,
            "latest_date": self.latest_date,
        }
