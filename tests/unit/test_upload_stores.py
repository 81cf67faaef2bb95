from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import MagicMock

import psycopg2
import pytest
import requests

from rtu_recon.models.config_models import DatabaseConfig, ReconConfig, StoreConfig
from rtu_recon.storage import (
    DirectoryUploadStore,
    HttpUploadStore,
    PostgresUploadStore,
    UploadStoreError,
    create_store,
)
from rtu_recon.storage.postgres import resolve_dsn


# --- directory ---------------------------------------------------------------

def test_directory_store_lists_and_fetches(tmp_path: Path, workbook_writer):
    """Test directory store listing and fetch."""
    workbook_writer(tmp_path / "device status.xlsx", [["SITE CODE", "DEVICE STATUS"], ["S1", "ONLINE"]])
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
    (tmp_path / "online-offline.csv").write_text("SITE CODE,17-11-2025\nS1,x\n", encoding="utf-8")
    store = DirectoryUploadStore(tmp_path)
    files = store.list_files()
    assert [f.file_id for f in files] == ["device status.xlsx", "online-offline.csv"]
    assert all(f.uploaded_at for f in files)
    ds = store.fetch("device status.xlsx")
    assert ds.rows == [{"SITE CODE": "S1", "DEVICE STATUS": "ONLINE"}]


def test_directory_store_errors(tmp_path: Path):
    """Directory store errors raise UploadStoreError."""
    with pytest.raises(UploadStoreError, match="not found"):
        DirectoryUploadStore(tmp_path / "missing").list_files()
    store = DirectoryUploadStore(tmp_path)
    with pytest.raises(UploadStoreError, match="not found"):
        store.fetch("nope.xlsx")
    with pytest.raises(UploadStoreError):
        store.fetch("../outside.xlsx")
    (tmp_path / "broken.xlsx").write_bytes(b"garbage")
    with pytest.raises(UploadStoreError, match="failed to read"):
        store.fetch("broken.xlsx")


# --- postgres ----------------------------------------------------------------

def _pg_store(rows=None, one=None, error: Exception | None = None) -> tuple[PostgresUploadStore, MagicMock]:
    conn = MagicMock()
    cur = conn.cursor.return_value.__enter__.return_value
    if error is not None:
        cur.execute.side_effect = error
    cur.fetchall.return_value = rows or []
    cur.fetchone.return_value = one
    return PostgresUploadStore("dbname=test", connection=conn), cur


def test_postgres_list_files():
    """Test Postgres listing (mocked connection)."""
    store, cur = _pg_store(rows=[("f1", "device status.xlsx", "device-status-upload", None, None)])
    files = store.list_files()
    assert files[0].file_id == "f1"
    assert files[0].upload_type == "device-status-upload"
    assert cur.execute.call_count == 1


def test_postgres_fetch_decodes_json_text():
    """JSON text column is decoded into a Dataset."""
    store, cur = _pg_store(one=("snap.xlsx", '["SITE CODE"]', '[{"SITE CODE": "S1"}]'))
    ds = store.fetch("f2")
    assert ds.name == "snap.xlsx"
    assert ds.headers == ["SITE CODE"]
    assert ds.rows == [{"SITE CODE": "S1"}]
    assert cur.execute.call_args[0][1] == ("f2",)


def test_postgres_fetch_missing_and_db_error():
    """Missing row and DB errors raise UploadStoreError."""
    store, _ = _pg_store(one=None)
    with pytest.raises(UploadStoreError, match="not found"):
        store.fetch("nope")
    broken, _ = _pg_store(error=psycopg2.OperationalError("boom"))
    with pytest.raises(UploadStoreError, match="listing uploads failed"):
        broken.list_files()


def test_resolve_dsn_precedence(clean_env):
    """DATABASE_URL beats PG* variables, which beat the config."""
    cfg = DatabaseConfig(host="cfg-host", port=6543, user="cfg", password="pw", database="cfgdb")
    assert resolve_dsn(cfg) == "host=cfg-host port=6543 user=cfg dbname=cfgdb password=pw"
    clean_env.setenv("PGHOST", "env-host")
    assert resolve_dsn(cfg).startswith("host=env-host port=6543")
    clean_env.setenv("DATABASE_URL", "postgresql://u@h/db")
    assert resolve_dsn(cfg) == "postgresql://u@h/db"
    assert os.getenv("PGDSN") is None


# --- http --------------------------------------------------------------------

def _response(payload, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


def test_http_store_list_and_fetch(clean_env):
    """Test HTTP store listing and fetch (mocked requests)."""
    session = MagicMock()
    session.headers = {}
    session.get.side_effect = [
        _response({"success": True, "files": [
            {"fileId": "a1", "name": "online-offline.xlsx", "uploadType": "online-offline-data", "uploadedAt": "2025-11-17T00:00:00Z"},
            {"name": "no id"},
        ]}),
        _response({"success": True, "file": {"headers": ["SITE CODE"], "rows": [{"SITE CODE": "S1"}]}}),
    ]
    store = HttpUploadStore("http://api.local/", token="t0k", session=session)
    files = store.list_files()
    assert [(f.file_id, f.upload_type) for f in files] == [("a1", "online-offline-data")]
    ds = store.fetch("a1")
    assert ds.rows == [{"SITE CODE": "S1"}]
    assert session.headers["Authorization"] == "Bearer t0k"
    assert session.get.call_args_list[0][0][0] == "http://api.local/api/uploads"
    assert session.get.call_args_list[1][0][0] == "http://api.local/api/uploads/a1"


def test_http_store_token_from_env(clean_env):
    """Bearer token is read from the environment."""
    clean_env.setenv("RECON_API_TOKEN", "from-env")
    session = MagicMock()
    session.headers = {}
    HttpUploadStore("http://api.local", session=session)
    assert session.headers["Authorization"] == "Bearer from-env"


@pytest.mark.parametrize(
    "response_or_error, match",
    [
        (_response({}, status=500), "failed"),
        (_response({"success": False, "message": "denied"}), "denied"),
        (requests.ConnectionError("refused"), "failed"),
    ],
)
def test_http_store_errors(clean_env, response_or_error, match):
    """HTTP errors raise UploadStoreError."""
    session = MagicMock()
    session.headers = {}
    if isinstance(response_or_error, Exception):
        session.get.side_effect = response_or_error
    else:
        session.get.return_value = response_or_error
    store = HttpUploadStore("http://api.local", session=session)
    with pytest.raises(UploadStoreError, match=match):
        store.list_files()


def test_http_fetch_without_file_body(clean_env):
    """Fetch response without a file body is an error."""
    session = MagicMock()
    session.headers = {}
    session.get.return_value = _response({"success": True})
    with pytest.raises(UploadStoreError, match="no file body"):
        HttpUploadStore("http://api.local", session=session).fetch("x")


# --- factory -----------------------------------------------------------------

def test_create_store_kinds(clean_env, tmp_path: Path):
    """create_store builds each store kind."""
    assert isinstance(create_store(ReconConfig(store=StoreConfig(kind="directory", directory=str(tmp_path)))), DirectoryUploadStore)
    pg = create_store(ReconConfig(store=StoreConfig(kind="postgres", table="t")))
    assert isinstance(pg, PostgresUploadStore) and pg.table == "t"
    http = create_store(ReconConfig(store=StoreConfig(kind="http", base_url="http://x")))
    assert isinstance(http, HttpUploadStore)
    with pytest.raises(UploadStoreError):
        create_store(ReconConfig(store=StoreConfig(kind="http")))
