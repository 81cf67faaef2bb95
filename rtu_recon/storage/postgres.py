from __future__ import annotations

import json
import logging
import os
from typing import Any

import psycopg2
from psycopg2 import sql

from ..models.config_models import DatabaseConfig
from ..models.dataset import Dataset, UploadedFile
from .base import UploadStore, UploadStoreError

"""PostgreSQL upload store.

Uploads live in one table (default ``uploads``):

    file_id text primary key, name text, upload_type text,
    uploaded_at timestamptz, created_at timestamptz,
    headers jsonb, rows jsonb

Connection resolution order (.env is loaded in override mode by the CLI):
    1. DATABASE_URL / PGDSN
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the config ``database`` section
"""

__all__ = [
    "PostgresUploadStore",
    "resolve_dsn",
]

logger = logging.getLogger(__name__)


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build the libpq connection string from env vars and config fallbacks."""
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _iso(value: Any) -> str | None:
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _json(value: Any) -> Any:
    # jsonb arrives decoded; text columns arrive as str
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


class PostgresUploadStore(UploadStore):
    def __init__(self, dsn: str, *, table: str = "uploads", connection: Any = None) -> None:
        self.dsn = dsn
        self.table = table
        self._conn = connection

    def _connection(self) -> Any:
        if self._conn is None:
            try:
                self._conn = psycopg2.connect(self.dsn)
            except psycopg2.Error as e:
                raise UploadStoreError(f"database connection failed: {e}") from e
            self._conn.autocommit = True
        return self._conn

    def list_files(self) -> list[UploadedFile]:
        query = sql.SQL(
            "SELECT file_id, name, upload_type, uploaded_at, created_at FROM {} ORDER BY created_at"
        ).format(sql.Identifier(self.table))
        try:
            with self._connection().cursor() as cur:
                cur.execute(query)
                rows = cur.fetchall()
        except psycopg2.Error as e:
            raise UploadStoreError(f"listing uploads failed: {e}") from e
        return [
            UploadedFile(
                file_id=str(file_id),
                name=name or str(file_id),
                upload_type=upload_type,
                uploaded_at=_iso(uploaded_at),
                created_at=_iso(created_at),
            )
            for file_id, name, upload_type, uploaded_at, created_at in rows
        ]

    def fetch(self, file_id: str) -> Dataset:
        query = sql.SQL("SELECT name, headers, rows FROM {} WHERE file_id = %s").format(
            sql.Identifier(self.table)
        )
        try:
            with self._connection().cursor() as cur:
                cur.execute(query, (file_id,))
                found = cur.fetchone()
        except psycopg2.Error as e:
            raise UploadStoreError(f"fetching upload {file_id} failed: {e}") from e
        if found is None:
            raise UploadStoreError(f"upload not found: {file_id}")
        name, headers, rows = found
        try:
            headers = _json(headers) or []
            rows = _json(rows) or []
        except json.JSONDecodeError as e:
            raise UploadStoreError(f"upload {file_id} holds invalid JSON: {e}") from e
        return Dataset(name=name or file_id, headers=[str(h) for h in headers], rows=list(rows))

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except psycopg2.Error as e:  # pragma: no cover
                logger.debug("closing connection failed: %s", e)
            self._conn = None
