"""Workbook loading (Excel / CSV -> RawTable)."""
