# Shared pytest fixtures
from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from rtu_recon.logging.init import reset_logging
from rtu_recon.models.dataset import Dataset
from rtu_recon.models.headers import ResolvedDataset
from rtu_recon.services.header_resolver import resolve_dataset


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch, tmp_path: Path) -> Path:
    (tmp_path / "config").mkdir()
    (tmp_path / "data").mkdir()
    (tmp_path / "logs").mkdir()
    monkeypatch.chdir(tmp_path)
    for var in ("DATABASE_URL", "PGDSN", "RECON_API_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture()
def sample_config_yaml() -> str:
    return """store:
  kind: directory
  directory: ./data
header_resolution:
  sample_rows: 50
  min_dominant_count: 5
user:
  role: CCR
  divisions: []
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "recon.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def write_xlsx(path: Path, rows: list[list[Any]]) -> Path:
    """Write rows (first row = headers) to a single-sheet workbook."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Sheet1", header=False, index=False)
    return path


@pytest.fixture()
def make_xlsx(temp_workdir: Path) -> Callable[[str, list[list[Any]]], Path]:
    def _make(name: str, rows: list[list[Any]]) -> Path:
        return write_xlsx(temp_workdir / "data" / name, rows)
    return _make


@pytest.fixture()
def make_resolved() -> Callable[..., ResolvedDataset]:
    """Build a ResolvedDataset from headers + row dicts."""
    def _make(name: str, headers: list[str], rows: list[dict[str, Any]], **kwargs: Any) -> ResolvedDataset:
        return resolve_dataset(Dataset(name=name, headers=headers, rows=rows), **kwargs)
    return _make


@pytest.fixture()
def clean_env(monkeypatch):
    for var in list(os.environ):
        if var.startswith("PG") or var in ("DATABASE_URL", "RECON_API_TOKEN"):
            monkeypatch.delenv(var, raising=False)
    return monkeypatch


@pytest.fixture()
def workbook_writer() -> Callable[[Path, list[list[Any]]], Path]:
    return write_xlsx


DEVICE_STATUS_ROWS: list[list[Any]] = [
    ["SITE CODE", "DEVICE STATUS", "EQUIPMENT L/R SWITCH STATUS", "RTU L/R SWITCH STATUS",
     "CIRCLE", "DIVISION", "SUB DIVISION"],
    ["S1", "ONLINE", "LOCAL", "REMOTE", "C1", "D1", "SD1"],
    ["S2", "OFFLINE", "REMOTE", "LOCAL", "C1", "D2", "SD2"],
]

ONLINE_OFFLINE_ROWS: list[list[Any]] = [
    ["SITE CODE", "16-11-2025", "17-11-2025"],
    ["S1", "ONLINE", "ONLINE"],
    ["S2", "OFFLINE", "OFFLINE"],
]

RTU_TRACKER_ROWS: list[list[Any]] = [
    ["SITE CODE", "17-11-2025", "RTU MAKE", "RTU TRACKER OBSERVATION"],
    ["S1", "ok", "ABB", "obs"],
    ["S2", "ok", "XYZ", "obs"],
]


@pytest.fixture()
def standard_uploads(make_xlsx) -> dict[str, Path]:
    """Device status + online-offline workbooks under ./data."""
    return {
        "device_status": make_xlsx("device status.xlsx", DEVICE_STATUS_ROWS),
        "online_offline": make_xlsx("online-offline.xlsx", ONLINE_OFFLINE_ROWS),
    }


@pytest.fixture()
def tracker_upload(make_xlsx) -> Path:
    return make_xlsx("rtu tracker.xlsx", RTU_TRACKER_ROWS)
