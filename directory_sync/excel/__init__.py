"""Workbook reading and writing (pandas + openpyxl)."""
