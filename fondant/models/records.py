from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

"""Record domain models.

RawTable is what a loader hands over, RecordGroup is one materialized sheet and
Dataset is one fully loaded snapshot of every sheet. All of them are frozen;
a reload replaces the whole Dataset instead of mutating it.
"""

__all__ = [
    "ID_FIELD",
    "RawTable",
    "Record",
    "RecordGroup",
    "Dataset",
]

# Reserved record key that always carries a non-empty identifier
ID_FIELD = "id"


@dataclass(frozen=True)
class RawTable:
    """Unprocessed header + row data for one named sheet/range."""
    name: str
    original_headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]

    @staticmethod
    def create(name: str, original_headers: Any, rows: Any) -> RawTable:
        """Build a RawTable from loosely typed sequences (lists from JSON, pandas, ...)."""
        return RawTable(
            name=name,
            original_headers=tuple(original_headers or ()),
            rows=tuple(tuple(r) for r in (rows or ())),
        )


@dataclass(frozen=True)
class Record:
    """One logical row: normalized field -> string value, with a reserved id.

    The values mapping is exposed read-only; `id` is validated at construction.
    """
    values: Mapping[str, str]

    def __post_init__(self) -> None:
        if not self.values.get(ID_FIELD):
            raise ValueError("record id must not be empty")
        # freeze a private copy so callers cannot mutate a published record
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @property
    def id(self) -> str:
        return self.values[ID_FIELD]

    def __getitem__(self, key: str) -> str:
        return self.values[key]

    def get(self, key: str, default: str = "") -> str:
        return self.values.get(key, default)

    def to_dict(self) -> dict[str, str]:
        return dict(self.values)


@dataclass(frozen=True)
class RecordGroup:
    """Materialized sheet (name, normalized headers, raw provenance, records).

    `headers[i]` lines up with `rows[*][i]` and with the key used in `records[*]`.
    """
    name: str
    headers: tuple[str, ...]
    original_headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    records: tuple[Record, ...]

    def header_index(self, field_name: str) -> int:
        """Position of `field_name` among headers (case-insensitive), -1 if absent."""
        wanted = field_name.lower()
        for i, header in enumerate(self.headers):
            if header.lower() == wanted:
                return i
        return -1


@dataclass(frozen=True)
class Dataset:
    """Ordered, immutable collection of RecordGroups."""
    groups: tuple[RecordGroup, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[RecordGroup]:
        return iter(self.groups)

    def __len__(self) -> int:
        return len(self.groups)

    def records(self) -> Iterator[Record]:
        """Every record of every group, in group order."""
        for group in self.groups:
            yield from group.records

    @property
    def total_records(self) -> int:
        return sum(len(g.records) for g in self.groups)
