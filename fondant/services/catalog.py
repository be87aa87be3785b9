from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ..indexing.identifier_index import build_identifier_index
from ..indexing.materializer import build_dataset
from ..indexing.search_index import DEFAULT_FUZZY, SearchIndex
from ..models.query import QueryRequest, QueryResult
from ..models.records import Dataset, RawTable, Record
from .router import route

"""Catalog: the owned handle on the active dataset and its indexes.

A Snapshot bundles one Dataset with the identifier index and the full-text
index built from it. The Catalog only ever publishes complete snapshots: a
load builds the new triple aside and then rebinds a single attribute, so a
query reads either the old snapshot or the new one, never a mix. Queries take
the reference once and work on it without locking; writers are serialized.

If a build raises, nothing is published and the previous snapshot stays.
"""

__all__ = [
    "SearchSettings",
    "Snapshot",
    "Catalog",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchSettings:
    """Indexing/query options taken from configuration."""
    id_field_name: str = "id"
    indexed_fields: tuple[str, ...] = ()
    store_fields: tuple[str, ...] | None = None
    prefix: bool = True
    fuzzy: float = DEFAULT_FUZZY
    limit: int | None = None


@dataclass(frozen=True)
class Snapshot:
    """One immutable (dataset, identifier index, search index) version."""
    version: int
    dataset: Dataset
    identifier_index: Mapping[str, Record]
    search_index: SearchIndex | None
    loaded_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class Catalog:
    """Serves queries against the current Snapshot and swaps in new ones."""

    def __init__(self, settings: SearchSettings | None = None) -> None:
        self.settings = settings or SearchSettings()
        self._snapshot: Snapshot | None = None
        self._version = 0
        self._write_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def snapshot(self) -> Snapshot | None:
        return self._snapshot

    @property
    def ready(self) -> bool:
        return self._snapshot is not None

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def _build_snapshot(self, dataset: Dataset, version: int) -> Snapshot:
        s = self.settings
        search_index = SearchIndex.build(
            s.indexed_fields,
            dataset.groups,
            store_fields=s.store_fields,
            prefix=s.prefix,
            fuzzy=s.fuzzy,
            limit=s.limit,
        )
        return Snapshot(
            version=version,
            dataset=dataset,
            identifier_index=build_identifier_index(dataset.groups),
            search_index=search_index,
        )

    def adopt(self, dataset: Dataset) -> Snapshot:
        """Index an already materialized dataset (e.g. a persisted one) and publish it."""
        with self._write_lock:
            snapshot = self._build_snapshot(dataset, self._version + 1)
            self._version = snapshot.version
            self._snapshot = snapshot
        logger.info(
            f"catalog v{snapshot.version}: {len(dataset)} sheets, {dataset.total_records} records"
        )
        return snapshot

    def load(self, tables: Sequence[RawTable]) -> Snapshot:
        """Materialize raw tables, build both indexes, then publish.

        Raises:
            LoadFailure: malformed input; the previous snapshot stays active
        """
        dataset = build_dataset(tables, id_field_name=self.settings.id_field_name)
        return self.adopt(dataset)

    def reload_in_background(self, fetch: Callable[[], Sequence[RawTable]]) -> Future[Snapshot]:
        """Fetch + load on a single worker thread; the future carries the new snapshot or the error."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="fondant-reload")
        return self._executor.submit(lambda: self.load(fetch()))

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def route(self, request: QueryRequest) -> QueryResult:
        return route(self._snapshot, request, self.settings.id_field_name)

    def query_free_text(self, term: str) -> QueryResult:
        return self.route(QueryRequest.free_text(term))

    def query_by_field(self, field_name: str, field_value: str) -> QueryResult:
        return self.route(QueryRequest.lookup(field_name, field_value))

    def scan_by_field(self, field_name: str, term: str) -> QueryResult:
        return self.route(QueryRequest.scan(field_name, term))
