"""Fondant: fuzzy and exact lookup over records loaded from spreadsheets."""

__version__ = "0.1.0"
