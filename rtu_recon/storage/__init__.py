"""Upload-storage collaborators (directory, PostgreSQL, REST API)."""

from __future__ import annotations

from pathlib import Path

from ..models.config_models import ReconConfig
from .base import UploadStore, UploadStoreError
from .directory import DirectoryUploadStore
from .http import HttpUploadStore
from .postgres import PostgresUploadStore, resolve_dsn

__all__ = [
    "UploadStore",
    "UploadStoreError",
    "DirectoryUploadStore",
    "PostgresUploadStore",
    "HttpUploadStore",
    "create_store",
]


def create_store(config: ReconConfig) -> UploadStore:
    """Build the upload store selected by ``store.kind``."""
    store = config.store
    if store.kind == "directory":
        return DirectoryUploadStore(Path(store.directory), header_row=store.header_row)
    if store.kind == "postgres":
        return PostgresUploadStore(resolve_dsn(config.database), table=store.table)
    if store.kind == "http":
        if not store.base_url:
            raise UploadStoreError("store.base_url is required for the http store")
        return HttpUploadStore(store.base_url, timeout=store.timeout_sec)
    raise UploadStoreError(f"unknown store kind: {store.kind}")
