"""Persistence of loaded datasets for warm starts."""
