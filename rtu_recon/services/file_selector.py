from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Callable, Sequence

import pandas as pd

from ..models.dataset import UploadedFile
from ..models.recon_result import DatasetRole

"""Upload selection: pick the latest upload for each dataset role.

Files are matched by upload type first and by name heuristics otherwise:

- device status: type ``device-status-upload`` or a name mentioning device
  status, but never an online-offline or RTU tracker file
- online-offline: type ``online-offline-data`` or a name mentioning
  online-offline
- RTU tracker: type ``rtu-tracker`` or a name matching rtu...tracker

Among the matches the latest ``uploaded_at`` (falling back to
``created_at``) wins; equal timestamps keep listing order.
"""

__all__ = [
    "DEVICE_STATUS_TYPE",
    "ONLINE_OFFLINE_TYPE",
    "RTU_TRACKER_TYPE",
    "is_device_status_file",
    "is_online_offline_file",
    "is_rtu_tracker_file",
    "matches_role",
    "upload_timestamp",
    "select_latest",
    "select_all",
    "file_listing_fingerprint",
]

DEVICE_STATUS_TYPE = "device-status-upload"
ONLINE_OFFLINE_TYPE = "online-offline-data"
RTU_TRACKER_TYPE = "rtu-tracker"

_RTU_TRACKER_NAME = re.compile(r"rtu.*tracker", re.IGNORECASE)


def _name(f: UploadedFile) -> str:
    return (f.name or "").strip().lower()


def _type(f: UploadedFile) -> str:
    return (f.upload_type or "").strip().lower()


def _squash(text: str) -> str:
    return re.sub(r"[-_\s]", "", text)


def _online_offline_name(name: str) -> bool:
    return any(p in name for p in ("online-offline", "online_offline", "online offline", "onlineoffline"))


def _rtu_tracker_name(name: str) -> bool:
    return "rtutracker" in _squash(name) or bool(_RTU_TRACKER_NAME.search(name))


def is_online_offline_file(f: UploadedFile) -> bool:
    return _type(f) == ONLINE_OFFLINE_TYPE or _online_offline_name(_name(f))


def is_rtu_tracker_file(f: UploadedFile) -> bool:
    return _type(f) == RTU_TRACKER_TYPE or _rtu_tracker_name(_name(f))


def is_device_status_file(f: UploadedFile) -> bool:
    name = _name(f)
    by_type = _type(f) == DEVICE_STATUS_TYPE
    by_name = "devicestatus" in _squash(name)
    if not (by_type or by_name):
        return False
    return not is_online_offline_file(f) and not is_rtu_tracker_file(f)


_PREDICATES: dict[DatasetRole, Callable[[UploadedFile], bool]] = {
    DatasetRole.DEVICE_STATUS: is_device_status_file,
    DatasetRole.ONLINE_OFFLINE: is_online_offline_file,
    DatasetRole.RTU_TRACKER: is_rtu_tracker_file,
}


def matches_role(f: UploadedFile, role: DatasetRole) -> bool:
    return _PREDICATES[role](f)


def upload_timestamp(f: UploadedFile) -> int:
    """Upload time in ns since the epoch (0 when missing or unparseable)."""
    raw = f.uploaded_at or f.created_at
    if not raw:
        return 0
    ts = pd.to_datetime(raw, utc=True, errors="coerce")
    if pd.isna(ts):
        return 0
    return int(ts.value)


def select_all(files: Sequence[UploadedFile], role: DatasetRole) -> list[UploadedFile]:
    """Files matching a role, newest first (stable for equal timestamps)."""
    matching = [f for f in files if matches_role(f, role)]
    return sorted(matching, key=upload_timestamp, reverse=True)


def select_latest(files: Sequence[UploadedFile], role: DatasetRole) -> UploadedFile | None:
    ranked = select_all(files, role)
    return ranked[0] if ranked else None


def file_listing_fingerprint(files: Sequence[UploadedFile]) -> str:
    """Digest of a file listing; changes whenever an upload is added, replaced or removed."""
    entries = sorted(
        [f.file_id, f.name, f.upload_type or "", f.uploaded_at or "", f.created_at or ""]
        for f in files
    )
    return hashlib.sha256(json.dumps(entries, ensure_ascii=False).encode("utf-8")).hexdigest()
