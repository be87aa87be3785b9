"""Catalog, query routing, result rendering and progress display."""
