"""Reconciliation pipeline stages and orchestration services."""
