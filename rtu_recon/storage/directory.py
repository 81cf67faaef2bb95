from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ..excel.reader import SUPPORTED_SUFFIXES, ReadError, read_dataset
from ..models.dataset import Dataset, UploadedFile
from .base import UploadStore, UploadStoreError

"""Local directory upload store.

Each .xlsx / .csv file directly inside the directory (non-recursive) is one
upload. The file name is the file id and the modification time stands in for
the upload timestamp.
"""

__all__ = [
    "DirectoryUploadStore",
]

logger = logging.getLogger(__name__)


class DirectoryUploadStore(UploadStore):
    def __init__(self, directory: Path, *, header_row: int = 0) -> None:
        self.directory = Path(directory)
        self.header_row = header_row

    def _scan(self) -> list[Path]:
        if not self.directory.exists():
            raise UploadStoreError(f"Directory not found: {self.directory}")
        if not self.directory.is_dir():
            raise UploadStoreError(f"Path is not a directory: {self.directory}")
        try:
            return sorted(
                p for p in self.directory.iterdir()
                if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES and not p.name.startswith("~$")
            )
        except OSError as e:
            raise UploadStoreError(f"Error reading directory {self.directory}: {e}") from e

    def list_files(self) -> list[UploadedFile]:
        files: list[UploadedFile] = []
        for path in self._scan():
            stat = path.stat()
            modified = datetime.fromtimestamp(stat.st_mtime, UTC).isoformat()
            files.append(
                UploadedFile(
                    file_id=path.name,
                    name=path.name,
                    uploaded_at=modified,
                    created_at=modified,
                )
            )
        logger.debug("directory %s: %d upload(s)", self.directory, len(files))
        return files

    def fetch(self, file_id: str) -> Dataset:
        path = self.directory / file_id
        if path.parent != self.directory or not path.is_file():
            raise UploadStoreError(f"upload not found: {file_id}")
        try:
            return read_dataset(path, header_row=self.header_row)
        except ReadError as e:
            raise UploadStoreError(str(e)) from e
