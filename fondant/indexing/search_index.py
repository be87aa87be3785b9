from __future__ import annotations

import logging
import math
import re
from bisect import bisect_left
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence

from rapidfuzz.distance import Levenshtein

from ..models.query import ScoredResult
from ..models.records import ID_FIELD, Record, RecordGroup
from .headers import normalize_header

"""Full-text search index with prefix and fuzzy matching.

Inverted index over a configured subset of record fields:

    token -> field position -> document -> term frequency

Documents are the records of every group, flattened in dataset order. A query
is tokenized the same way as the indexed values; each query token is expanded
into the indexed terms it matches exactly, as a prefix, or within an edit
distance of `fuzzy * len(token)`. Terms are scored with BM25 per field and
weighted by match quality. Query tokens combine with OR; records matching
more of them are boosted. Ranking is tiered: records that hit more query
tokens exactly come first whatever their field lengths, and the weighted
score only orders records inside a tier.

The index is built once per dataset and never mutated afterwards.
"""

__all__ = [
    "SearchIndex",
    "tokenize",
]

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"[^\W_]+")

# BM25+ parameters
BM25_K1 = 1.2
BM25_B = 0.7
BM25_DELTA = 0.5

EXACT_WEIGHT = 1.0
PREFIX_WEIGHT = 0.375
FUZZY_WEIGHT = 0.45

DEFAULT_FUZZY = 0.2


def tokenize(text: str | None) -> list[str]:
    """Lower-cased tokens split on whitespace and punctuation."""
    if not text:
        return []
    return _TOKEN.findall(text.lower())


def _field_value(values: Mapping[str, str], field: str, field_lower: str) -> str:
    value = values.get(field)
    if value is not None:
        return value
    for key, v in values.items():
        if key.lower() == field_lower:
            return v
    return ""


def _unique(items: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for item in items:
        if item and item not in seen:
            seen[item] = None
    return tuple(seen)


class SearchIndex:
    """Inverted index over `fields` of a set of Records.

    Args:
        fields: Field names to index (normalized like headers; matched to
            record keys case-insensitively)
        store_fields: Field names whose values are returned with each hit.
            Defaults to `fields`.
        prefix: Expand query tokens to indexed terms they prefix
        fuzzy: Edit distance tolerance. Below 1 it is a ratio of the token
            length, from 1 upwards an absolute distance. 0 disables.
        limit: Maximum number of results, None for all
    """

    def __init__(
        self,
        fields: Sequence[str],
        *,
        store_fields: Sequence[str] | None = None,
        prefix: bool = True,
        fuzzy: float = DEFAULT_FUZZY,
        limit: int | None = None,
    ) -> None:
        self.fields = _unique(normalize_header(f) for f in fields)
        self.store_fields = (
            _unique(normalize_header(f) for f in store_fields) if store_fields is not None else self.fields
        )
        self.prefix = prefix
        self.fuzzy = fuzzy
        self.limit = limit

        self._fields_lower = tuple(f.lower() for f in self.fields)
        self._store_lower = tuple(f.lower() for f in self.store_fields)

        self._doc_ids: list[str] = []
        self._stored: list[dict[str, str]] = []
        self._field_lengths: list[tuple[int, ...]] = []
        self._total_field_length = [0] * len(self.fields)
        self._postings: dict[str, dict[int, dict[int, int]]] = {}

        self._vocabulary: list[str] = []
        self._terms_by_length: dict[int, list[str]] = {}
        self._dirty = False

    @classmethod
    def build(
        cls,
        indexed_fields: Sequence[str],
        groups: Iterable[RecordGroup],
        **options,
    ) -> SearchIndex:
        """Index every record of every group."""
        index = cls(indexed_fields, **options)
        for group in groups:
            index.add_all(group.records)
        index._refresh_vocabulary()
        logger.debug(
            f"search index built: fields={list(index.fields)} documents={len(index)} terms={len(index._postings)}"
        )
        return index

    def __len__(self) -> int:
        return len(self._doc_ids)

    @property
    def term_count(self) -> int:
        return len(self._postings)

    def add(self, record: Record) -> None:
        doc = len(self._doc_ids)
        values = record.values
        self._doc_ids.append(values.get(ID_FIELD, ""))
        self._stored.append(
            {f: _field_value(values, f, fl) for f, fl in zip(self.store_fields, self._store_lower)}
        )
        lengths: list[int] = []
        for pos, (field, field_lower) in enumerate(zip(self.fields, self._fields_lower)):
            tokens = tokenize(_field_value(values, field, field_lower))
            lengths.append(len(tokens))
            self._total_field_length[pos] += len(tokens)
            for token in tokens:
                by_field = self._postings.setdefault(token, {})
                by_doc = by_field.setdefault(pos, {})
                by_doc[doc] = by_doc.get(doc, 0) + 1
        self._field_lengths.append(tuple(lengths))
        self._dirty = True

    def add_all(self, records: Iterable[Record]) -> None:
        for record in records:
            self.add(record)

    def _refresh_vocabulary(self) -> None:
        self._vocabulary = sorted(self._postings)
        by_length: dict[int, list[str]] = defaultdict(list)
        for term in self._vocabulary:
            by_length[len(term)].append(term)
        self._terms_by_length = dict(by_length)
        self._dirty = False

    # ------------------------------------------------------------------
    # Query side
    # ------------------------------------------------------------------

    def _max_distance(self, token: str, fuzzy: float) -> int:
        if fuzzy <= 0:
            return 0
        if fuzzy >= 1:
            return int(fuzzy)
        return int(len(token) * fuzzy + 0.5)

    def _prefixed_terms(self, token: str) -> Iterable[str]:
        i = bisect_left(self._vocabulary, token)
        while i < len(self._vocabulary) and self._vocabulary[i].startswith(token):
            yield self._vocabulary[i]
            i += 1

    def _expand(self, token: str, prefix: bool, fuzzy: float) -> dict[str, float]:
        """Indexed terms reachable from `token` with their match-quality weight."""
        expanded: dict[str, float] = {}
        if token in self._postings:
            expanded[token] = EXACT_WEIGHT

        if prefix:
            for term in self._prefixed_terms(token):
                if term != token:
                    weight = PREFIX_WEIGHT * len(token) / len(term)
                    expanded[term] = max(expanded.get(term, 0.0), weight)

        max_distance = self._max_distance(token, fuzzy)
        if max_distance:
            for length in range(len(token) - max_distance, len(token) + max_distance + 1):
                for term in self._terms_by_length.get(length, ()):
                    if term == token:
                        continue
                    distance = Levenshtein.distance(token, term, score_cutoff=max_distance)
                    if distance <= max_distance:
                        weight = FUZZY_WEIGHT * len(term) / (len(term) + distance)
                        expanded[term] = max(expanded.get(term, 0.0), weight)
        return expanded

    def _term_scores(self, term: str) -> dict[int, float]:
        """BM25+ score of `term` per document, summed over indexed fields."""
        scores: dict[int, float] = defaultdict(float)
        n_docs = len(self._doc_ids)
        for pos, docs in self._postings.get(term, {}).items():
            df = len(docs)
            idf = math.log(1 + (n_docs - df + 0.5) / (df + 0.5))
            avg_length = self._total_field_length[pos] / n_docs if n_docs else 0.0
            for doc, tf in docs.items():
                length = self._field_lengths[doc][pos]
                norm = 1 - BM25_B + BM25_B * (length / avg_length if avg_length else 0.0)
                scores[doc] += idf * (BM25_DELTA + tf * (BM25_K1 + 1) / (tf + BM25_K1 * norm))
        return scores

    def search(
        self,
        term: str,
        *,
        prefix: bool | None = None,
        fuzzy: float | None = None,
        limit: int | None = None,
    ) -> list[ScoredResult]:
        """Rank records against a free-text query; [] for blank input or no match."""
        tokens = _unique(tokenize(term))
        if not tokens or not self._doc_ids:
            return []
        if self._dirty:
            self._refresh_vocabulary()
        use_prefix = self.prefix if prefix is None else prefix
        use_fuzzy = self.fuzzy if fuzzy is None else fuzzy
        use_limit = self.limit if limit is None else limit

        totals: dict[int, float] = defaultdict(float)
        matched_tokens: dict[int, int] = defaultdict(int)
        matched_terms: dict[int, set[str]] = defaultdict(set)
        exact_tokens: dict[int, int] = defaultdict(int)

        for token in tokens:
            # best expansion per document, so many prefix hits do not add up past an exact one
            best: dict[int, float] = {}
            for candidate, weight in self._expand(token, use_prefix, use_fuzzy).items():
                for doc, score in self._term_scores(candidate).items():
                    weighted = weight * score
                    if weighted > best.get(doc, 0.0):
                        best[doc] = weighted
                    matched_terms[doc].add(candidate)
                    if candidate == token:
                        exact_tokens[doc] += 1
            for doc, score in best.items():
                totals[doc] += score
                matched_tokens[doc] += 1

        # tiered by exactly matched tokens; BM25 only orders records within a tier
        ranked = sorted(totals, key=lambda d: (-exact_tokens[d], -totals[d] * matched_tokens[d], d))
        if use_limit is not None:
            ranked = ranked[:use_limit]
        return [
            ScoredResult(
                id=self._doc_ids[doc],
                score=totals[doc] * matched_tokens[doc],
                fields=dict(self._stored[doc]),
                terms=tuple(sorted(matched_terms[doc])),
            )
            for doc in ranked
        ]
