from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Query request and result models.

A typed line is classified once into a QueryRequest (see services.router.parse_request).
Every lookup answers with a QueryResult whose status tells apart "no match",
"nothing loaded yet" and "nothing asked"; none of those are exceptions.
"""

__all__ = [
    "RequestKind",
    "QueryRequest",
    "QueryStatus",
    "ScoredResult",
    "FieldMatch",
    "QueryResult",
]


class RequestKind(Enum):
    """Discriminant for a parsed request."""
    FREE_TEXT = "free_text"
    FIELD_LOOKUP = "field_lookup"  # exact value, first match
    FIELD_SCAN = "field_scan"  # substring, all matches
    RELOAD = "reload"
    EXIT = "exit"
    UNKNOWN_COMMAND = "unknown_command"
    EMPTY = "empty"


@dataclass(frozen=True)
class QueryRequest:
    kind: RequestKind
    term: str = ""
    field_name: str | None = None
    raw: str = ""

    @staticmethod
    def free_text(term: str) -> QueryRequest:
        return QueryRequest(kind=RequestKind.FREE_TEXT, term=term, raw=term)

    @staticmethod
    def lookup(field_name: str, value: str) -> QueryRequest:
        return QueryRequest(kind=RequestKind.FIELD_LOOKUP, term=value, field_name=field_name)

    @staticmethod
    def scan(field_name: str, term: str) -> QueryRequest:
        return QueryRequest(kind=RequestKind.FIELD_SCAN, term=term, field_name=field_name)


class QueryStatus(Enum):
    """Outcome of a routed query.

    - OK: at least one hit (or a lookup match)
    - NOT_FOUND: the lookup/scan ran and matched nothing
    - INDEX_UNAVAILABLE: free-text query before any successful load
    - EMPTY: blank term, nothing was dispatched
    """
    OK = "ok"
    NOT_FOUND = "not_found"
    INDEX_UNAVAILABLE = "index_unavailable"
    EMPTY = "empty"


@dataclass(frozen=True)
class ScoredResult:
    """One full-text hit: record id, relevance score, stored fields, matched index terms."""
    id: str
    score: float
    fields: dict[str, str]
    terms: tuple[str, ...] = ()


@dataclass(frozen=True)
class FieldMatch:
    """Single-row lookup answer: the group's headers and the matching row."""
    headers: tuple[str, ...]
    row: tuple[str, ...]
    group: str = ""


@dataclass(frozen=True)
class QueryResult:
    status: QueryStatus
    hits: list[ScoredResult] = field(default_factory=list)
    match: FieldMatch | None = None
    rows: list[tuple[str, ...]] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.status is QueryStatus.OK

    @staticmethod
    def empty() -> QueryResult:
        return QueryResult(status=QueryStatus.EMPTY)

    @staticmethod
    def not_found() -> QueryResult:
        return QueryResult(status=QueryStatus.NOT_FOUND)

    @staticmethod
    def unavailable() -> QueryResult:
        return QueryResult(status=QueryStatus.INDEX_UNAVAILABLE)
