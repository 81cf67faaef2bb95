"""Labeled console logging and the JSON Lines diagnostics log."""
