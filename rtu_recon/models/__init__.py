"""Domain models for the RTU/RMU status reconciliation tool.

This package contains all domain model classes used throughout the
application: datasets and upload listings, header bindings, merged records,
aggregation results, configuration and diagnostics.
"""

from .aggregation import Aggregation, Category, DashboardView, Filters, TrendPoint
from .config_models import (
    DatabaseConfig,
    FilterConfig,
    HeaderResolutionConfig,
    ReconConfig,
    StoreConfig,
    UserContext,
)
from .dataset import Dataset, UploadedFile
from .diagnostic_record import DiagnosticRecord
from .headers import HeaderRole, ResolvedDataset, ResolvedHeaders
from .recon_result import DatasetRole, DatasetStat, ReconResult
from .records import GroupKey, MergedRecord, MergeOutcome, MergeStats

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "FilterConfig",
    "HeaderResolutionConfig",
    "ReconConfig",
    "StoreConfig",
    "UserContext",
    # Input models
    "Dataset",
    "UploadedFile",
    "HeaderRole",
    "ResolvedHeaders",
    "ResolvedDataset",
    # Processing models
    "GroupKey",
    "MergedRecord",
    "MergeStats",
    "MergeOutcome",
    "Category",
    "Filters",
    "TrendPoint",
    "Aggregation",
    "DashboardView",
    "DatasetRole",
    "DatasetStat",
    "ReconResult",
    "DiagnosticRecord",
]
