from __future__ import annotations

from collections.abc import Iterable

from ..models.query import FieldMatch
from ..models.records import RecordGroup

"""Linear field scanner over raw rows.

Fallback for lookups on fields outside the identifier index and the full-text
index. Both field name (against normalized headers) and value compare
case-insensitively. Cost is groups x rows per call.
"""

__all__ = [
    "find_by_field_name",
    "search",
]


def _cell(row: tuple[str, ...], index: int) -> str:
    return row[index] if index < len(row) else ""


def find_by_field_name(
    groups: Iterable[RecordGroup], field_name: str | None, field_value: str | None
) -> FieldMatch | None:
    """First row whose `field_name` cell equals `field_value`, or None.

    The first group (in dataset order) whose headers contain the field decides
    the answer; later groups are not consulted even when it has no matching row.
    """
    if not field_name or not field_value:
        return None
    wanted = field_value.lower()
    for group in groups:
        index = group.header_index(field_name)
        if index == -1:
            continue
        for row in group.rows:
            if _cell(row, index).lower() == wanted:
                return FieldMatch(headers=group.headers, row=row, group=group.name)
        return None
    return None


def search(
    groups: Iterable[RecordGroup], search_field: str | None, term: str | None
) -> list[tuple[str, ...]]:
    """Every row, across every group having `search_field`, whose cell contains `term`."""
    results: list[tuple[str, ...]] = []
    if not search_field or not term:
        return results
    wanted = term.lower()
    for group in groups:
        index = group.header_index(search_field)
        if index == -1:
            continue
        results.extend(row for row in group.rows if wanted in _cell(row, index).lower())
    return results
