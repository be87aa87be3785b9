from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from typing import Any

from ..models.records import ID_FIELD, Dataset, RawTable, Record, RecordGroup
from ..services.progress import ProgressTracker
from .headers import normalize_header, normalize_headers

"""Record materialization.

Turns normalized headers + raw rows into Records and whole RawTables into a
Dataset. Missing cells become "", and a record without an id gets a fresh
uuid4. Malformed tables raise LoadFailure so the caller can keep serving the
previous dataset.
"""

__all__ = [
    "LoadFailure",
    "id_header",
    "materialize",
    "build_group",
    "build_dataset",
]

logger = logging.getLogger(__name__)


class LoadFailure(Exception):
    """Raised when raw tables (or a persisted snapshot) cannot be turned into a Dataset."""

    def __init__(self, message: str, *, sheet: str = "", row: int = -1) -> None:
        super().__init__(message)
        self.sheet = sheet
        self.row = row


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def new_record_id() -> str:
    return str(uuid.uuid4())


def id_header(headers: Sequence[str], id_field_name: str = ID_FIELD) -> str | None:
    """The header carrying record ids: an exact match first, else the first case-insensitive one."""
    wanted = normalize_header(id_field_name) or ID_FIELD
    if wanted in headers:
        return wanted
    lowered = wanted.lower()
    return next((h for h in headers if h.lower() == lowered), None)


def materialize(
    headers: Sequence[str], rows: Iterable[Sequence[Any]], *, id_field_name: str = ID_FIELD
) -> tuple[Record, ...]:
    """Zip each row onto the headers and return one Record per row.

    Duplicate headers overwrite earlier cells of the same row (last write wins).
    Cells past the last header are not part of the record. The reserved `id`
    key takes the cell under the `id_field_name` column, or a fresh uuid4 when
    that cell is empty or the column is missing.
    """
    key = id_header(headers, id_field_name)
    records: list[Record] = []
    for row in rows:
        values: dict[str, str] = {}
        for i, header in enumerate(headers):
            values[header] = _cell(row[i]) if i < len(row) else ""
        record_id = values.get(key, "") if key is not None else ""
        values[ID_FIELD] = record_id or new_record_id()
        records.append(Record(values))
    return tuple(records)


def _validate_table(table: RawTable) -> None:
    if not isinstance(table, RawTable):
        raise LoadFailure(f"expected RawTable, got {type(table).__name__}")
    if not table.name:
        raise LoadFailure("table without a name")
    if table.rows and not any(_cell(h).strip() for h in table.original_headers):
        raise LoadFailure(f"sheet '{table.name}' has rows but no headers", sheet=table.name)
    for n, row in enumerate(table.rows, start=1):
        if isinstance(row, (str, bytes)) or not isinstance(row, Sequence):
            raise LoadFailure(
                f"sheet '{table.name}' row {n} is not a sequence of cells",
                sheet=table.name,
                row=n,
            )


def build_group(table: RawTable, *, id_field_name: str = ID_FIELD) -> RecordGroup:
    """Normalize headers and materialize records for one RawTable."""
    _validate_table(table)
    headers = normalize_headers(table.original_headers)
    rows = tuple(tuple(_cell(c) for c in row) for row in table.rows)
    return RecordGroup(
        name=table.name,
        headers=headers,
        original_headers=tuple(_cell(h) for h in table.original_headers),
        rows=rows,
        records=materialize(headers, rows, id_field_name=id_field_name),
    )


def build_dataset(tables: Sequence[RawTable], *, id_field_name: str = ID_FIELD) -> Dataset:
    """Build a Dataset from every RawTable; any malformed table fails the whole build."""
    groups: list[RecordGroup] = []
    with ProgressTracker(len(tables), description="Indexing sheets") as progress:
        for table in tables:
            progress.start_sheet(getattr(table, "name", "?"))
            group = build_group(table, id_field_name=id_field_name)
            groups.append(group)
            logger.debug(f"sheet '{group.name}': {len(group.headers)} headers, {len(group.records)} records")
            progress.finish_sheet(len(group.records))
    return Dataset(groups=tuple(groups))
