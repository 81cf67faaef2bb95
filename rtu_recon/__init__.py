"""RTU/RMU status reconciliation: merge uploaded field-equipment datasets into dashboard views."""

__version__ = "0.1.0"
