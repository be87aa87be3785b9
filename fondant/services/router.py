from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..indexing import scanner
from ..models.query import FieldMatch, QueryRequest, QueryResult, QueryStatus, RequestKind

if TYPE_CHECKING:
    from .catalog import Snapshot

"""Query routing.

`parse_request` classifies a typed line once, at the boundary. `route` then
dispatches on the request kind:

- field lookup on the id field  -> identifier index
- any other field lookup        -> field scanner, exact match
- field scan                    -> field scanner, substring match
- free text                     -> full-text index (INDEX_UNAVAILABLE before a load)

Blank free text is answered with EMPTY without touching any index.
"""

__all__ = [
    "COMMAND_SIGIL",
    "parse_request",
    "route",
]

logger = logging.getLogger(__name__)

COMMAND_SIGIL = "!"
EXIT_WORDS = {"exit", "quit"}
RELOAD_COMMANDS = {"reload", "refresh"}


def parse_request(line: str | None) -> QueryRequest:
    """Turn one input line into a structured request.

    Commands start with `!`:
        !reload | !refresh
        !find <field> <value...>
        !scan <field> <term...>
    `exit` / `quit` end the session; anything else is free text.
    """
    text = (line or "").strip()
    if not text:
        return QueryRequest(kind=RequestKind.EMPTY, raw=line or "")
    if text.lower() in EXIT_WORDS:
        return QueryRequest(kind=RequestKind.EXIT, raw=text)
    if not text.startswith(COMMAND_SIGIL):
        return QueryRequest.free_text(text)

    parts = text[len(COMMAND_SIGIL):].split()
    command = parts[0].lower() if parts else ""
    if command in RELOAD_COMMANDS:
        return QueryRequest(kind=RequestKind.RELOAD, raw=text)
    if command in ("find", "scan") and len(parts) >= 3:
        field_name, value = parts[1], " ".join(parts[2:])
        if command == "find":
            request = QueryRequest.lookup(field_name, value)
        else:
            request = QueryRequest.scan(field_name, value)
        return QueryRequest(kind=request.kind, term=request.term, field_name=request.field_name, raw=text)
    return QueryRequest(kind=RequestKind.UNKNOWN_COMMAND, raw=text)


def _lookup(snapshot: Snapshot | None, field_name: str, value: str, id_field_name: str) -> QueryResult:
    if snapshot is None or not value:
        return QueryResult.not_found()
    if field_name.lower() == id_field_name.lower():
        record = snapshot.identifier_index.get(value)
        if record is not None:
            values = record.to_dict()
            match = FieldMatch(headers=tuple(values), row=tuple(values.values()))
            return QueryResult(status=QueryStatus.OK, match=match)
        # miss: fall back to the column itself
    match = scanner.find_by_field_name(snapshot.dataset.groups, field_name, value)
    if match is None:
        return QueryResult.not_found()
    return QueryResult(status=QueryStatus.OK, match=match)


def _scan(snapshot: Snapshot | None, field_name: str, term: str) -> QueryResult:
    if snapshot is None:
        return QueryResult.not_found()
    rows = scanner.search(snapshot.dataset.groups, field_name, term)
    if not rows:
        return QueryResult.not_found()
    return QueryResult(status=QueryStatus.OK, rows=rows)


def _free_text(snapshot: Snapshot | None, term: str) -> QueryResult:
    term = term.strip()
    if not term:
        return QueryResult.empty()
    if snapshot is None or snapshot.search_index is None:
        return QueryResult.unavailable()
    hits = snapshot.search_index.search(term)
    if not hits:
        return QueryResult.not_found()
    return QueryResult(status=QueryStatus.OK, hits=hits)


def route(snapshot: Snapshot | None, request: QueryRequest, id_field_name: str = "id") -> QueryResult:
    """Answer a lookup request against one snapshot.

    Administrative kinds (reload, exit, unknown command) are the caller's
    business and come back EMPTY.
    """
    if request.kind is RequestKind.FIELD_LOOKUP and request.field_name:
        return _lookup(snapshot, request.field_name, request.term, id_field_name)
    if request.kind is RequestKind.FIELD_SCAN and request.field_name:
        return _scan(snapshot, request.field_name, request.term)
    if request.kind is RequestKind.FREE_TEXT:
        return _free_text(snapshot, request.term)
    logger.debug(f"route: nothing to dispatch for {request.kind.value}")
    return QueryResult.empty()
