"""Spreadsheet reading into Dataset objects."""
