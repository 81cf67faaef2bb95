from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .dataset import Dataset

"""Semantic header bindings produced by the header resolver.

HeaderRole enumerates every column role the reconciliation understands.
ResolvedHeaders stores at most one column per role, except DATE_PER_COLUMN
which may bind many columns (one per snapshot date).
"""

__all__ = [
    "HeaderRole",
    "ResolvedHeaders",
    "ResolvedDataset",
]


class HeaderRole(Enum):
    """Semantic role of a dataset column."""
    SITE_CODE = "site_code"
    DEVICE_STATUS = "device_status"
    SWITCH_STATUS_EQUIPMENT = "switch_status_equipment"
    SWITCH_STATUS_RTU = "switch_status_rtu"
    DAYS_OFFLINE = "days_offline"
    DIVISION = "division"
    SUB_DIVISION = "sub_division"
    CIRCLE = "circle"
    DATE_SINGLE = "date_single"
    DATE_PER_COLUMN = "date_per_column"


@dataclass(frozen=True)
class ResolvedHeaders:
    """Column bindings for one dataset.

    ``columns`` maps each single-valued role to its column name. Snapshot
    columns live in ``date_columns`` (column name -> calendar date, header
    order preserved). ``inferred_date_columns`` is True when the snapshot
    columns were found by scanning cell values rather than header names.
    """
    columns: dict[HeaderRole, str] = field(default_factory=dict)
    date_columns: dict[str, date] = field(default_factory=dict)
    inferred_date_columns: bool = False

    def get(self, role: HeaderRole) -> str | None:
        return self.columns.get(role)

    @property
    def site_code(self) -> str | None:
        return self.columns.get(HeaderRole.SITE_CODE)

    @property
    def date_single(self) -> str | None:
        return self.columns.get(HeaderRole.DATE_SINGLE)

    def as_mapping(self) -> dict[HeaderRole, str | list[str]]:
        """Role -> column name, DATE_PER_COLUMN -> list of column names."""
        mapping: dict[HeaderRole, str | list[str]] = dict(self.columns)
        if self.date_columns:
            mapping[HeaderRole.DATE_PER_COLUMN] = list(self.date_columns.keys())
        return mapping

    def missing_roles(self) -> list[HeaderRole]:
        """Roles without a binding (date roles count as one group)."""
        missing = [
            role for role in HeaderRole
            if role not in (HeaderRole.DATE_SINGLE, HeaderRole.DATE_PER_COLUMN)
            and role not in self.columns
        ]
        if not self.date_columns and HeaderRole.DATE_SINGLE not in self.columns:
            missing.append(HeaderRole.DATE_PER_COLUMN)
        return missing


@dataclass(frozen=True)
class ResolvedDataset:
    """A dataset paired with its resolved header bindings."""
    dataset: Dataset
    headers: ResolvedHeaders

    @property
    def name(self) -> str:
        return self.dataset.name
