from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""DiagnosticRecord model for the diagnostics log.

Degraded-merge conditions (skipped datasets, unresolved columns, duplicate
and skipped-row counts) are tolerated by the pipeline but recorded here so a
run can be debugged afterwards. Each record serializes to one JSON line with
a fixed key set.
"""

__all__ = [
    "DiagnosticRecord",
]


@dataclass(frozen=True)
class DiagnosticRecord:
    """Structured diagnostic record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        dataset: Dataset (file) name the diagnostic is about, "<RUN>" for run-level entries
        role: Dataset role (device_status / online_offline / rtu_tracker)
        row: Row number (1-based). Use -1 when the diagnostic is not about a single row
        diagnostic_type: Classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    timestamp: str  # ISO8601 UTC
    dataset: str
    role: str
    row: int  # -1 when not row specific
    diagnostic_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(dataset: str, role: str, row: int, diagnostic_type: str, message: str) -> DiagnosticRecord:
        """Create a new DiagnosticRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return DiagnosticRecord(
            timestamp=ts,
            dataset=dataset,
            role=role,
            row=row,
            diagnostic_type=diagnostic_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
