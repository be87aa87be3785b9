from __future__ import annotations

from pathlib import Path

import pytest

from fondant.config.loader import ConfigError, ResultColumn, load_config, parse_result_columns


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_load_sample_config(write_config: Path):
    cfg = load_config(write_config, environ={})
    assert cfg.app_name == "Fondant"
    assert cfg.source_path == "./data"
    assert cfg.sheets is None
    assert cfg.indexed_fields == ("Name", "Description")
    assert cfg.result_columns == (ResultColumn("Name", "Name"), ResultColumn("Owner", "Owner"))
    assert cfg.store_fields == ("Name", "Description", "Owner")


def test_defaults_applied(temp_workdir: Path):
    p = _write(temp_workdir / "config" / "fondant.yml", "source: {path: ./data}\nindexed_fields: [Name]\n")
    cfg = load_config(p, environ={})
    assert cfg.app_name == "Fondant"
    assert cfg.snapshot_path == "./database.json"
    assert cfg.id_field_name == "id"
    assert cfg.result_columns == ()
    assert cfg.fuzzy == 0.2
    assert cfg.prefix is True
    assert cfg.limit is None


def test_search_settings_and_projection(write_config: Path):
    cfg = load_config(write_config, environ={})
    settings = cfg.search_settings()
    assert settings.indexed_fields == ("Name", "Description")
    assert settings.store_fields == ("Name", "Description", "Owner")
    assert settings.id_field_name == "id"
    projection = cfg.projection()
    assert projection.headings == ("Name", "Owner")
    assert projection.keys == ("Name", "Owner")


def test_missing_file_raises(temp_workdir: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_workdir / "config" / "nope.yml", environ={})


def test_invalid_yaml_raises(temp_workdir: Path):
    p = _write(temp_workdir / "config" / "fondant.yml", "source: [unclosed\n")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(p, environ={})


def test_non_mapping_root_raises(temp_workdir: Path):
    p = _write(temp_workdir / "config" / "fondant.yml", "- a\n- b\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(p, environ={})


def test_missing_required_key_raises(temp_workdir: Path):
    p = _write(temp_workdir / "config" / "fondant.yml", "source: {path: ./data}\n")
    with pytest.raises(ConfigError, match="validation failed"):
        load_config(p, environ={})


def test_unknown_key_raises(temp_workdir: Path):
    p = _write(
        temp_workdir / "config" / "fondant.yml",
        "source: {path: ./data}\nindexed_fields: [Name]\ndatabase: {host: x}\n",
    )
    with pytest.raises(ConfigError):
        load_config(p, environ={})


def test_env_overrides(write_config: Path):
    env = {
        "FONDANT_SOURCE_PATH": "/srv/catalog.xlsx",
        "FONDANT_SHEETS": "Products, People",
        "FONDANT_SNAPSHOT_PATH": "/tmp/db.json",
        "FONDANT_INDEXED_FIELDS": "Name",
        "FONDANT_RESULT_COLUMNS": "Product:Name,Team:Owner",
        "FONDANT_APP_NAME": "Catalog",
    }
    cfg = load_config(write_config, environ=env)
    assert cfg.source_path == "/srv/catalog.xlsx"
    assert cfg.sheets == ("Products", "People")
    assert cfg.snapshot_path == "/tmp/db.json"
    assert cfg.indexed_fields == ("Name",)
    assert cfg.result_columns == (ResultColumn("Product", "Name"), ResultColumn("Team", "Owner"))
    assert cfg.app_name == "Catalog"


def test_empty_env_values_are_ignored(write_config: Path):
    cfg = load_config(write_config, environ={"FONDANT_SOURCE_PATH": ""})
    assert cfg.source_path == "./data"


def test_env_can_supply_required_values(temp_workdir: Path):
    p = _write(temp_workdir / "config" / "fondant.yml", "app_name: Bare\n")
    cfg = load_config(p, environ={"FONDANT_SOURCE_PATH": "./data", "FONDANT_INDEXED_FIELDS": "Name,Description"})
    assert cfg.source_path == "./data"
    assert cfg.indexed_fields == ("Name", "Description")


def test_parse_result_columns():
    assert parse_result_columns("Product Name:Name, Owner") == [
        {"heading": "Product Name", "field": "Name"},
        {"heading": "Owner", "field": "Owner"},
    ]
    assert parse_result_columns(" , ") == []
