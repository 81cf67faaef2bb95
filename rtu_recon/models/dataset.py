from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Dataset and UploadedFile domain models.

A Dataset is one uploaded spreadsheet after reading: an ordered header list
plus row records keyed by header name. Cell types are not declared up front;
every stage infers them per use.

UploadedFile is the listing metadata returned by an upload store. It is used
to pick the most recent upload for each dataset role.
"""

__all__ = [
    "Dataset",
    "UploadedFile",
]


@dataclass(frozen=True)
class Dataset:
    """Header list + row records for one uploaded spreadsheet."""
    name: str  # File name (or file id when no name is known)
    headers: list[str]  # Column names in sheet order, duplicates possible
    rows: list[dict[str, Any]] = field(default_factory=list)  # Header name -> cell value

    @property
    def unique_headers(self) -> list[str]:
        """Headers with duplicates removed, first occurrence kept."""
        seen: set[str] = set()
        ordered: list[str] = []
        for h in self.headers:
            if h in seen:
                continue
            seen.add(h)
            ordered.append(h)
        return ordered

    @classmethod
    def from_rows(cls, name: str, rows: list[dict[str, Any]], headers: list[str] | None = None) -> Dataset:
        """Build a Dataset, deriving headers from the first row when none are given."""
        if not headers:
            headers = [str(k) for k in rows[0].keys()] if rows else []
        return cls(name=name, headers=list(headers), rows=list(rows))


@dataclass(frozen=True)
class UploadedFile:
    """Upload listing entry."""
    file_id: str
    name: str
    upload_type: str | None = None  # e.g. device-status-upload / online-offline-data / rtu-tracker
    uploaded_at: str | None = None  # ISO timestamp of the latest (re-)upload
    created_at: str | None = None  # ISO timestamp of first creation
