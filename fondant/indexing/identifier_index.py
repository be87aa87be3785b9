from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from ..models.records import Record, RecordGroup

"""Identifier index: record id -> Record, rebuilt in full for every dataset."""

__all__ = [
    "build_identifier_index",
]


def build_identifier_index(groups: Iterable[RecordGroup]) -> Mapping[str, Record]:
    """Index every record of every group by id.

    A later record with an already seen id replaces the earlier one.
    """
    index: dict[str, Record] = {}
    for group in groups:
        for record in group.records:
            index[record.id] = record
    return MappingProxyType(index)
