from __future__ import annotations

from abc import ABC, abstractmethod

from ..models.dataset import Dataset, UploadedFile

"""Upload store interface.

An upload store lists uploaded files and fetches one file's header list and
rows. Every run fetches fresh copies; stores keep no per-run state.
"""

__all__ = [
    "UploadStore",
    "UploadStoreError",
]


class UploadStoreError(Exception):
    """Raised when listing or fetching uploads fails."""


class UploadStore(ABC):
    @abstractmethod
    def list_files(self) -> list[UploadedFile]:
        """Return upload metadata in the store's listing order.

        Raises:
            UploadStoreError: If the listing cannot be retrieved.
        """

    @abstractmethod
    def fetch(self, file_id: str) -> Dataset:
        """Return the dataset stored under ``file_id``.

        Raises:
            UploadStoreError: If the file is unknown or cannot be read.
        """

    def close(self) -> None:  # noqa: B027
        """Release connections held by the store."""
