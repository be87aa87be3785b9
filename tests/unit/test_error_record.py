from __future__ import annotations

import json

import pytest

from fondant.models.error_record import ErrorRecord

"""Unit tests for the ErrorRecord model."""


def test_error_record_row_minus_one_support():
    """row=-1 marks a source-level error with no single row to blame."""
    rec = ErrorRecord.create(
        source="data/missing.xlsx",
        sheet="",
        row=-1,
        error_type="SOURCE_ERROR",
        message="source not found: data/missing.xlsx",
    )

    assert rec.row == -1
    data = json.loads(rec.to_json_line())
    assert data["row"] == -1
    assert data["source"] == "data/missing.xlsx"
    assert data["error_type"] == "SOURCE_ERROR"
    assert data["timestamp"].endswith("Z")
    assert set(data.keys()) == {"timestamp", "source", "sheet", "row", "error_type", "message"}


def test_error_record_positive_row_number():
    rec = ErrorRecord.create("catalog.xlsx", "Products", 42, "LOAD_FAILURE", "row 42 is not a sequence")
    assert json.loads(rec.to_json_line())["row"] == 42


def test_non_ascii_message_kept_verbatim():
    rec = ErrorRecord.create("catalog.xlsx", "Pessoas", 3, "LOAD_FAILURE", "cabeçalho inválido")
    line = rec.to_json_line()
    assert "cabeçalho inválido" in line
    assert "\n" not in line


def test_error_record_is_frozen():
    rec = ErrorRecord.create("a", "b", 1, "X", "y")
    with pytest.raises(AttributeError):
        rec.row = 2  # type: ignore[misc]
