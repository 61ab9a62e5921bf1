"""Spreadsheet import reconciliation for the staff directory (employees, office contacts)."""

__version__ = "0.1.0"
