from __future__ import annotations

import json
from pathlib import Path

from fondant.cli import main as cli_main
from fondant.cli.app import EXIT_FATAL, EXIT_RELOAD_FAILED, EXIT_SUCCESS

"""Failure paths: missing source, failed reload over an existing snapshot, broken snapshot."""


def _error_lines(workdir: Path) -> list[dict]:
    files = sorted((workdir / "logs").glob("errors-*.log"))
    assert len(files) == 1
    return [json.loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]


def test_missing_source_without_snapshot(write_config: Path, temp_workdir: Path, monkeypatch, capsys):
    monkeypatch.setenv("FONDANT_SOURCE_PATH", "./missing")
    code = cli_main(["--query", "kuber"])
    out = capsys.readouterr().out

    assert code == EXIT_FATAL
    assert "ERROR reload failed (no data loaded)" in out
    assert "ERROR no data available to query" in out
    records = _error_lines(temp_workdir)
    assert records[0]["error_type"] == "SOURCE_ERROR"
    assert records[0]["source"] == "./missing"
    assert records[0]["row"] == -1


def test_failed_reload_keeps_snapshot(
    write_config: Path, sample_workbook: Path, temp_workdir: Path, monkeypatch, capsys
):
    assert cli_main(["--query", "kuber"]) == EXIT_SUCCESS
    capsys.readouterr()

    monkeypatch.setenv("FONDANT_SOURCE_PATH", "./missing")
    code = cli_main(["--reload", "--query", "kuber"])
    out = capsys.readouterr().out

    assert code == EXIT_RELOAD_FAILED
    assert "ERROR reload failed (keeping v1)" in out
    assert "Kubernetes" in out
    assert "Found 1 matches." in out


def test_corrupt_workbook_reload_keeps_snapshot(
    write_config: Path, sample_workbook: Path, temp_workdir: Path, capsys
):
    assert cli_main(["--query", "kuber"]) == EXIT_SUCCESS
    capsys.readouterr()

    (temp_workdir / "data" / "bad.xlsx").write_bytes(b"PK\x03\x04garbage")
    code = cli_main(["--reload", "--query", "kuber"])
    out = capsys.readouterr().out

    assert code == EXIT_RELOAD_FAILED
    assert "ERROR reload failed (keeping v1)" in out
    assert "Kubernetes" in out
    records = _error_lines(temp_workdir)
    assert records[0]["error_type"] == "SOURCE_ERROR"


def test_malformed_sheet_is_load_failure(write_config: Path, temp_workdir: Path, capsys):
    # data rows below an empty header row cannot be materialized
    (temp_workdir / "data" / "broken.csv").write_text(",\nx,y\n", encoding="utf-8")
    code = cli_main(["--query", "anything"])
    out = capsys.readouterr().out

    assert code == EXIT_FATAL
    assert "reload failed" in out
    records = _error_lines(temp_workdir)
    assert records[0]["error_type"] == "LOAD_FAILURE"
    assert records[0]["sheet"] == "broken"


def test_unusable_snapshot_falls_back_to_source(
    write_config: Path, sample_workbook: Path, temp_workdir: Path, capsys
):
    (temp_workdir / "database.json").write_text("{broken", encoding="utf-8")
    code = cli_main(["--query", "kuber"])
    out = capsys.readouterr().out

    assert code == EXIT_SUCCESS
    assert "WARN snapshot unusable" in out
    assert "SUMMARY version=1" in out
    assert "Kubernetes" in out


def test_missing_config_is_fatal(temp_workdir: Path, capsys):
    assert cli_main([]) == EXIT_FATAL
    assert "ERROR config: config file not found" in capsys.readouterr().out


def test_invalid_config_is_fatal(temp_workdir: Path, capsys):
    (temp_workdir / "config" / "fondant.yml").write_text("source: {path: ./data}\n", encoding="utf-8")
    assert cli_main(["--query", "x"]) == EXIT_FATAL
    assert "config validation failed" in capsys.readouterr().out
