from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.diagnostic_record import DiagnosticRecord

"""Diagnostics log buffering.

Degraded-merge conditions never fail a run, but each one is recorded as a
DiagnosticRecord and written as JSON Lines (fixed key set) to
``logs/diagnostics-YYYYMMDD-HHMMSS.log`` (UTC) when the run flushes.
"""

__all__ = [
    "DiagnosticRecord",
    "DiagnosticLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class DiagnosticLogBuffer:
    """In-memory buffer of diagnostic records; flush appends JSON Lines.

    The file path is decided on first access. Nothing is written when the
    buffer is empty.
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[DiagnosticRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"diagnostics-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[DiagnosticRecord]:
        return list(self._records)

    def append(self, record: DiagnosticRecord) -> None:
        self._records.append(record)

    def add(self, dataset: str, role: str, row: int, diagnostic_type: str, message: str) -> None:
        """Shortcut for ``append(DiagnosticRecord.create(...))``."""
        self._records.append(DiagnosticRecord.create(dataset, role, row, diagnostic_type, message))

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records and clear the buffer.

        Returns:
            The log file path, or None when there was nothing to write.
        """
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
