# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from fondant.indexing.materializer import build_dataset
from fondant.logging.init import reset_logging
from fondant.models.records import Dataset, RawTable


@pytest.fixture(autouse=True)
def _fresh_logger():
    # the handler binds sys.stdout at setup time; rebuild it per test so capsys sees output
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """app_name: Fondant
source:
  path: ./data
snapshot_path: ./database.json
id_field_name: id
indexed_fields: [Name, Description]
result_columns:
  - {heading: Name, field: Name}
  - {heading: Owner, field: Owner}
search:
  fuzzy: 0.2
  prefix: true
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "fondant.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_workbook(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    """Write each sheet's rows (first row = headers) without pandas' own header/index."""
    with pd.ExcelWriter(path) as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return path


@pytest.fixture()
def workbook_factory():
    return make_workbook


PRODUCT_ROWS: list[list[object]] = [
    ["id", "Name", "Description", "Owner"],
    ["p-1", "Kubernetes", "Container orchestration platform", "Platform Team"],
    ["p-2", "Docker Engine", "Container runtime", "Runtime Team"],
    ["p-3", "RHEL", "Enterprise Linux distribution", "OS Team"],
]

PEOPLE_ROWS: list[list[object]] = [
    ["Full Name", "Dept", "# of Projects"],
    ["Ann Lee", "Ops", "3"],
    ["Bo Chen", "Consulting", "1"],
]


@pytest.fixture()
def sample_workbook(temp_workdir: Path) -> Path:
    return make_workbook(
        temp_workdir / "data" / "catalog.xlsx",
        {"Products": PRODUCT_ROWS, "People": PEOPLE_ROWS},
    )


@pytest.fixture()
def raw_tables() -> list[RawTable]:
    return [
        RawTable.create("Products", PRODUCT_ROWS[0], PRODUCT_ROWS[1:]),
        RawTable.create("People", PEOPLE_ROWS[0], PEOPLE_ROWS[1:]),
    ]


@pytest.fixture()
def sample_dataset(raw_tables: list[RawTable]) -> Dataset:
    return build_dataset(raw_tables)
