from __future__ import annotations

import time

from rtu_recon.models.dataset import Dataset
from rtu_recon.services.aggregator import aggregate, default_filters
from rtu_recon.services.header_resolver import resolve_dataset
from rtu_recon.services.row_merger import merge

"""Merge throughput smoke test.

The primary dataset is indexed once per run, so merging N sites x D snapshot
columns should stay well under a second for dashboard-sized uploads.
"""

SITES = 5_000
DATES = [f"{d:02d}-11-2025" for d in range(1, 11)]


def _datasets() -> tuple[Dataset, Dataset]:
    primary_headers = ["SITE CODE", "DEVICE STATUS", "DIVISION"]
    primary = Dataset(
        name="device status.xlsx",
        headers=primary_headers,
        rows=[
            {"SITE CODE": f"S{i}", "DEVICE STATUS": "ONLINE" if i % 3 else "OFFLINE", "DIVISION": f"D{i % 7}"}
            for i in range(SITES)
        ],
    )
    snapshot = Dataset(
        name="online-offline.xlsx",
        headers=["SITE CODE", *DATES],
        rows=[{"SITE CODE": f"S{i}", **{d: "x" for d in DATES}} for i in range(SITES)],
    )
    return primary, snapshot


def test_merge_and_aggregate_timing():
    """Merge and aggregation of a large snapshot stay within the smoke limit."""
    primary, snapshot = _datasets()
    start = time.perf_counter()
    outcome = merge(resolve_dataset(primary), [resolve_dataset(snapshot)])
    agg = aggregate(outcome.records, default_filters(outcome.records))
    elapsed = time.perf_counter() - start

    assert outcome.stats.kept == SITES * len(DATES)
    assert outcome.stats.joined_with_primary == SITES * len(DATES)
    assert len(agg.trend) == len(DATES)
    # Lenient limit for CI
    assert elapsed < 10.0, f"merge too slow: {elapsed:.3f}s"
