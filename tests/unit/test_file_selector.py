from __future__ import annotations

import pytest

from rtu_recon.models.dataset import UploadedFile
from rtu_recon.models.recon_result import DatasetRole
from rtu_recon.services.file_selector import (
    file_listing_fingerprint,
    is_device_status_file,
    is_online_offline_file,
    is_rtu_tracker_file,
    select_all,
    select_latest,
    upload_timestamp,
)


def uf(file_id: str, name: str, upload_type: str | None = None, uploaded_at: str | None = None,
       created_at: str | None = None) -> UploadedFile:
    return UploadedFile(file_id=file_id, name=name, upload_type=upload_type, uploaded_at=uploaded_at, created_at=created_at)


@pytest.mark.parametrize(
    "f, expected",
    [
        (uf("1", "Device Status 17-11.xlsx"), True),
        (uf("2", "anything.xlsx", "device-status-upload"), True),
        (uf("3", "device_status online-offline.xlsx"), False),
        (uf("4", "DeviceStatus.xlsx", "rtu-tracker"), False),
        (uf("5", "status.xlsx"), False),
    ],
)
def test_device_status_predicate(f, expected):
    """Test device status file name matching."""
    assert is_device_status_file(f) is expected


def test_online_offline_and_tracker_predicates():
    """Test online-offline and tracker file name matching."""
    assert is_online_offline_file(uf("1", "ONLINE-OFFLINE DATA.xlsx"))
    assert is_online_offline_file(uf("2", "snapshot.xlsx", "online-offline-data"))
    assert not is_online_offline_file(uf("3", "online report.xlsx"))
    assert is_rtu_tracker_file(uf("4", "RTU_Tracker Nov.xlsx"))
    assert is_rtu_tracker_file(uf("5", "rtu status tracker.xlsx"))
    assert is_rtu_tracker_file(uf("6", "x.xlsx", "RTU-TRACKER"))
    assert not is_rtu_tracker_file(uf("7", "tracker rtu.xlsx"))


def test_select_latest_uses_uploaded_then_created():
    """Latest upload is picked by uploaded_at, then created_at."""
    files = [
        uf("a", "online-offline 1.xlsx", uploaded_at="2025-11-16T10:00:00Z"),
        uf("b", "online-offline 2.xlsx", created_at="2025-11-17T09:00:00+05:30"),
        uf("c", "online-offline 3.xlsx", uploaded_at="2025-11-15T00:00:00Z", created_at="2025-12-01T00:00:00Z"),
        uf("d", "device status.xlsx", uploaded_at="2030-01-01T00:00:00Z"),
    ]
    assert select_latest(files, DatasetRole.ONLINE_OFFLINE).file_id == "b"
    assert [f.file_id for f in select_all(files, DatasetRole.ONLINE_OFFLINE)] == ["b", "a", "c"]


def test_select_latest_ties_keep_listing_order():
    """Ties keep the first file in listing order."""
    files = [
        uf("first", "online-offline.xlsx", uploaded_at="2025-11-16T10:00:00Z"),
        uf("second", "online-offline.xlsx", uploaded_at="2025-11-16T10:00:00Z"),
    ]
    assert select_latest(files, DatasetRole.ONLINE_OFFLINE).file_id == "first"


def test_select_latest_none_when_no_match():
    """No matching file gives None."""
    assert select_latest([uf("x", "other.xlsx")], DatasetRole.RTU_TRACKER) is None


def test_missing_or_bad_timestamps_sort_oldest():
    """Missing or bad timestamps sort as oldest."""
    assert upload_timestamp(uf("x", "n")) == 0
    assert upload_timestamp(uf("x", "n", uploaded_at="not a date")) == 0
    files = [uf("old", "rtu tracker.xlsx"), uf("new", "rtu tracker.xlsx", uploaded_at="2025-01-01")]
    assert select_latest(files, DatasetRole.RTU_TRACKER).file_id == "new"


def test_fingerprint_tracks_listing_changes():
    """Listing fingerprint changes with the listing."""
    a = [uf("1", "a.xlsx", uploaded_at="2025-11-16"), uf("2", "b.xlsx")]
    same_reordered = list(reversed(a))
    replaced = [uf("1", "a.xlsx", uploaded_at="2025-11-17"), uf("2", "b.xlsx")]
    assert file_listing_fingerprint(a) == file_listing_fingerprint(same_reordered)
    assert file_listing_fingerprint(a) != file_listing_fingerprint(replaced)
    assert file_listing_fingerprint(a) != file_listing_fingerprint(a[:1])
