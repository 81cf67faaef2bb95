from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the reconciliation tool.

These are the typed form of config/recon.yml. The loader in
rtu_recon/config/loader.py validates the YAML against the JSON schema and
builds these objects; services only ever see the dataclasses.
"""

__all__ = [
    "DatabaseConfig",
    "StoreConfig",
    "HeaderResolutionConfig",
    "UserContext",
    "FilterConfig",
    "ReconConfig",
]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class StoreConfig:
    """Where uploaded datasets come from."""
    kind: str = "directory"  # directory | postgres | http
    directory: str = "./data"  # kind=directory
    table: str = "uploads"  # kind=postgres
    base_url: str | None = None  # kind=http
    timeout_sec: float = 30.0  # kind=http
    header_row: int = 0  # Spreadsheet row holding the headers (0-based)


@dataclass(frozen=True)
class HeaderResolutionConfig:
    """Tuning for the cell-value date column scan."""
    sample_rows: int = 50  # Rows inspected per column
    min_dominant_count: int = 5  # Minimum occurrences of the dominant date


@dataclass(frozen=True)
class UserContext:
    """Explicit user identity used for default filter selection."""
    role: str = ""  # Equipment | CCR | ...
    divisions: tuple[str, ...] = ()


@dataclass(frozen=True)
class FilterConfig:
    circle: str | None = None
    division: str | None = None
    sub_division: str | None = None
    date: str | None = None


@dataclass(frozen=True)
class ReconConfig:
    """Root configuration object."""
    store: StoreConfig = field(default_factory=StoreConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    header_resolution: HeaderResolutionConfig = field(default_factory=HeaderResolutionConfig)
    user: UserContext = field(default_factory=UserContext)
    filters: FilterConfig = field(default_factory=FilterConfig)
