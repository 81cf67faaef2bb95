from __future__ import annotations

import logging
from datetime import UTC, datetime

from ..logging.diagnostics_log import DiagnosticLogBuffer
from ..models.config_models import ReconConfig
from ..models.dataset import Dataset, UploadedFile
from ..models.headers import HeaderRole, ResolvedDataset
from ..models.recon_result import DatasetRole, DatasetStat, ReconResult
from ..storage.base import UploadStore, UploadStoreError
from .aggregator import grouping_options
from .date_extractor import format_date_iso
from .file_selector import select_latest
from .header_resolver import resolve_dataset
from .progress import FetchProgress
from .row_merger import MissingBindingError, enrich_with_tracker, merge

"""Reconciliation pipeline orchestration.

One run:
1. list uploads (failure is fatal)
2. select the latest file per dataset role
3. fetch the device-status dataset (absent / failed is fatal)
4. fetch the optional snapshot and RTU tracker datasets (absent / failed
   datasets are left out and recorded as diagnostics)
5. resolve headers, merge, enrich with the tracker, compute filter options

Every run fetches its own copies of the datasets and returns a brand-new
ReconResult; nothing is shared between runs.
"""

__all__ = [
    "PipelineError",
    "PrimaryDatasetError",
    "ReconciliationPipeline",
]

logger = logging.getLogger(__name__)

RUN_DATASET = "<RUN>"


class PipelineError(Exception):
    """Base exception for fatal pipeline errors."""


class PrimaryDatasetError(PipelineError):
    """The device-status dataset is missing, unreadable or has no site code column."""


class ReconciliationPipeline:
    def __init__(
        self,
        store: UploadStore,
        config: ReconConfig | None = None,
        diagnostics: DiagnosticLogBuffer | None = None,
    ) -> None:
        self.store = store
        self.config = config or ReconConfig()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLogBuffer()

    def _diag(self, dataset: str, role: DatasetRole | None, diagnostic_type: str, message: str, row: int = -1) -> None:
        self.diagnostics.add(dataset, role.value if role else "", row, diagnostic_type, message)

    def _resolve(self, dataset: Dataset, role: DatasetRole) -> ResolvedDataset:
        hr = self.config.header_resolution
        resolved = resolve_dataset(
            dataset, sample_rows=hr.sample_rows, min_dominant_count=hr.min_dominant_count
        )
        if resolved.headers.inferred_date_columns:
            dates = ", ".join(
                f"{col}={format_date_iso(d)}" for col, d in resolved.headers.date_columns.items()
            )
            self._diag(dataset.name, role, "DATE_COLUMNS_INFERRED", f"date columns inferred from cell values: {dates}")
        return resolved

    def _fetch(self, f: UploadedFile, role: DatasetRole, progress: FetchProgress) -> Dataset | None:
        progress.start(f.name)
        try:
            dataset = self.store.fetch(f.file_id)
        except UploadStoreError as e:
            progress.finish(ok=False)
            if role is DatasetRole.DEVICE_STATUS:
                self._diag(f.name, role, "DATASET_FETCH_FAILED", str(e))
                raise PrimaryDatasetError(f"device status dataset '{f.name}' could not be fetched: {e}") from e
            logger.warning("%s dataset '%s' could not be fetched: %s", role.value, f.name, e)
            self._diag(f.name, role, "DATASET_FETCH_FAILED", str(e))
            return None
        progress.finish()
        logger.debug("fetched %s: %d rows, %d columns", f.name, len(dataset.rows), len(dataset.headers))
        return dataset

    def run(self, run_id: int = 0) -> ReconResult:
        """Run the full pipeline once.

        Args:
            run_id: Id handed out by ResultPublisher.begin_run() (0 = unpublished run)

        Returns:
            ReconResult for this run.

        Raises:
            PipelineError: If the upload listing cannot be retrieved.
            PrimaryDatasetError: If the device-status dataset is unusable.
        """
        start_time = datetime.now(UTC)
        try:
            return self._run(run_id, start_time)
        finally:
            path = self.diagnostics.flush()
            if path is not None:
                logger.info(f"diagnostics written to {path}")

    def _run(self, run_id: int, start_time: datetime) -> ReconResult:
        try:
            files = self.store.list_files()
        except UploadStoreError as e:
            self._diag(RUN_DATASET, None, "LISTING_FAILED", str(e))
            raise PipelineError(f"upload listing failed: {e}") from e

        selected: dict[DatasetRole, UploadedFile | None] = {
            role: select_latest(files, role) for role in DatasetRole
        }
        primary_file = selected[DatasetRole.DEVICE_STATUS]
        if primary_file is None:
            self._diag(RUN_DATASET, DatasetRole.DEVICE_STATUS, "NO_MATCHING_FILE", "no device status upload found")
            raise PrimaryDatasetError("no device status upload found")

        stats: dict[DatasetRole, DatasetStat] = {}
        datasets: dict[DatasetRole, Dataset] = {}
        to_fetch = [(role, f) for role, f in selected.items() if f is not None]
        with FetchProgress(len(to_fetch)) as progress:
            for role, f in to_fetch:
                dataset = self._fetch(f, role, progress)
                if dataset is None:
                    stats[role] = DatasetStat(role=role, file_name=f.name, status="fetch_failed")
                else:
                    datasets[role] = dataset
        for role, f in selected.items():
            if f is None:
                logger.warning(f"no {role.value} upload found; continuing without it")
                self._diag(RUN_DATASET, role, "NO_MATCHING_FILE", f"no {role.value} upload found")
                stats[role] = DatasetStat(role=role, file_name=None, status="absent")

        resolved: dict[DatasetRole, ResolvedDataset] = {
            role: self._resolve(dataset, role) for role, dataset in datasets.items()
        }
        for role, r in resolved.items():
            missing = r.headers.missing_roles()
            if missing:
                self._diag(
                    r.name, role, "UNRESOLVED_COLUMNS",
                    "no column for: " + ", ".join(m.value for m in missing),
                )
            status = "used"
            if role is not DatasetRole.DEVICE_STATUS and HeaderRole.SITE_CODE in missing:
                status = "skipped"
                self._diag(r.name, role, "MISSING_SITE_CODE", "dataset has no site code column; left out of the merge")
            stats[role] = DatasetStat(
                role=role,
                file_name=r.name,
                status=status,
                rows=len(r.dataset.rows),
                unresolved_roles=tuple(missing),
            )

        primary = resolved[DatasetRole.DEVICE_STATUS]
        secondaries = [resolved[DatasetRole.ONLINE_OFFLINE]] if DatasetRole.ONLINE_OFFLINE in resolved else []
        try:
            outcome = merge(primary, secondaries)
        except MissingBindingError as e:
            self._diag(primary.name, DatasetRole.DEVICE_STATUS, "MISSING_SITE_CODE", str(e))
            raise PrimaryDatasetError(str(e)) from e

        ms = outcome.stats
        if ms.primary_as_source:
            self._diag(RUN_DATASET, None, "PRIMARY_AS_SOURCE", "no snapshot dataset contributed; device status rows used as records")
        if ms.duplicates:
            self._diag(RUN_DATASET, None, "DUPLICATE_RECORDS", f"{ms.duplicates} duplicate (site code, date) candidates dropped")
        if ms.skipped_no_site_code:
            self._diag(RUN_DATASET, None, "ROWS_WITHOUT_SITE_CODE", f"{ms.skipped_no_site_code} rows without site code skipped")
        if ms.unparsed_dates:
            self._diag(RUN_DATASET, None, "UNPARSEABLE_DATE", f"{ms.unparsed_dates} date cells could not be parsed; records kept undated")

        records = outcome.records
        tracker_matches = 0
        tracker = resolved.get(DatasetRole.RTU_TRACKER)
        if tracker is not None and stats[DatasetRole.RTU_TRACKER].status == "used":
            records, tracker_matches = enrich_with_tracker(records, tracker)
            logger.debug(f"RTU tracker matched {tracker_matches} of {len(records)} records")

        end_time = datetime.now(UTC)
        return ReconResult(
            run_id=run_id,
            records=records,
            options=grouping_options(records),
            merge_stats=ms,
            dataset_stats=[stats[role] for role in DatasetRole if role in stats],
            tracker_matches=tracker_matches,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
        )
