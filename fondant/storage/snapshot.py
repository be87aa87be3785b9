from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..indexing.materializer import LoadFailure
from ..models.records import Dataset, Record, RecordGroup

"""Dataset snapshot persistence (JSON).

Warm start without re-reading the source: the whole Dataset is written as one
JSON document and read back with every RecordGroup field intact, including the
generated record ids. Layout:

    {"format": 1,
     "groups": [{"name": ..., "headers": [...], "original_headers": [...],
                 "rows": [[...]], "records": [{...}]}]}

Writes go to a temporary file in the target directory and are moved into
place with os.replace, so a crash never leaves a half-written snapshot.
"""

__all__ = [
    "SNAPSHOT_FORMAT",
    "dataset_to_dict",
    "dataset_from_dict",
    "save_snapshot",
    "load_snapshot",
]

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT = 1
_GROUP_KEYS = ("name", "headers", "original_headers", "rows", "records")


def dataset_to_dict(dataset: Dataset) -> dict[str, Any]:
    return {
        "format": SNAPSHOT_FORMAT,
        "groups": [
            {
                "name": g.name,
                "headers": list(g.headers),
                "original_headers": list(g.original_headers),
                "rows": [list(r) for r in g.rows],
                "records": [r.to_dict() for r in g.records],
            }
            for g in dataset.groups
        ],
    }


def _strings(value: Any, what: str, sheet: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise LoadFailure(f"snapshot: {what} of sheet '{sheet}' must be a list of strings", sheet=sheet)
    return tuple(value)


def _group_from_dict(raw: Any) -> RecordGroup:
    if not isinstance(raw, dict) or any(k not in raw for k in _GROUP_KEYS):
        raise LoadFailure(f"snapshot: group entries need keys {list(_GROUP_KEYS)}")
    name = raw["name"]
    if not isinstance(name, str) or not name:
        raise LoadFailure("snapshot: group without a name")
    if not isinstance(raw["rows"], list) or not isinstance(raw["records"], list):
        raise LoadFailure(f"snapshot: rows/records of sheet '{name}' must be lists", sheet=name)
    rows = tuple(_strings(r, "row", name) for r in raw["rows"])
    records = []
    for n, values in enumerate(raw["records"], start=1):
        if not isinstance(values, dict):
            raise LoadFailure(f"snapshot: record {n} of sheet '{name}' is not an object", sheet=name, row=n)
        try:
            records.append(Record({str(k): str(v) for k, v in values.items()}))
        except ValueError as e:
            raise LoadFailure(f"snapshot: record {n} of sheet '{name}': {e}", sheet=name, row=n) from e
    return RecordGroup(
        name=name,
        headers=_strings(raw["headers"], "headers", name),
        original_headers=_strings(raw["original_headers"], "original_headers", name),
        rows=rows,
        records=tuple(records),
    )


def dataset_from_dict(data: Any) -> Dataset:
    if not isinstance(data, dict) or not isinstance(data.get("groups"), list):
        raise LoadFailure("snapshot: expected an object with a 'groups' list")
    if data.get("format", SNAPSHOT_FORMAT) != SNAPSHOT_FORMAT:
        raise LoadFailure(f"snapshot: unsupported format {data.get('format')!r}")
    return Dataset(groups=tuple(_group_from_dict(g) for g in data["groups"]))


def save_snapshot(dataset: Dataset, path: Path) -> Path:
    """Write `dataset` to `path` atomically and return the path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(dataset_to_dict(dataset), f, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug(f"snapshot written: {path} ({dataset.total_records} records)")
    return path


def load_snapshot(path: Path) -> Dataset:
    """Read a snapshot written by save_snapshot.

    Raises:
        FileNotFoundError: no snapshot at `path`
        LoadFailure: the file is not valid JSON or not a snapshot
    """
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LoadFailure(f"snapshot: invalid JSON in {path}: {e}") from e
    return dataset_from_dict(data)
