from __future__ import annotations

from ..models.aggregation import Category
from ..models.recon_result import ReconResult

"""SUMMARY line rendering.

Format:
SUMMARY datasets={used}/{selected} records={n} duplicates={n}
skipped_rows={n} dates={n} online={n} offline={n} elapsed_sec={s}
"""

__all__ = [
    "format_elapsed",
    "render_summary_line",
]


def format_elapsed(seconds: float) -> str:
    """Render seconds without scientific notation or trailing zeros."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ReconResult, counts: dict[Category, int]) -> str:
    """Render the SUMMARY line for a finished run.

    Args:
        result: Finished reconciliation run
        counts: Card counts of the view that was printed

    Examples:
        >>> from rtu_recon.models.records import MergeStats
        >>> result = ReconResult(run_id=1, records=[], options={}, merge_stats=MergeStats(), elapsed_seconds=2.0)
        >>> render_summary_line(result, {})
        'SUMMARY datasets=0/0 records=0 duplicates=0 skipped_rows=0 dates=0 online=0 offline=0 elapsed_sec=2'
    """
    ms = result.merge_stats
    return (
        f"SUMMARY datasets={result.datasets_used}/{result.datasets_selected} "
        f"records={len(result.records)} "
        f"duplicates={ms.duplicates} "
        f"skipped_rows={ms.skipped_no_site_code} "
        f"dates={result.distinct_dates} "
        f"online={counts.get(Category.ONLINE, 0)} "
        f"offline={counts.get(Category.OFFLINE, 0)} "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)}"
    )
