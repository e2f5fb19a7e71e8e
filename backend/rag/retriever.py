from __future__ import annotations

import logging
from typing import List, Tuple

from rag.errors import InvalidLimit, InvalidQuery, UpstreamSearchFailure
from rag.index_base import VectorIndex
from rag.observability import LoggingObserver, RetrievalObserver, notify
from rag.types import (
    UNFILTERED,
    ContentChunk,
    FilteredResultSet,
    FilterRecord,
    OnlyDocuments,
    RetrievalScope,
    RetrievalSummary,
)

logger = logging.getLogger(__name__)

NOT_SELECTED = "source_not_selected"


def filter_candidates(
    candidates: List[ContentChunk],
    scope: RetrievalScope,
) -> Tuple[List[ContentChunk], List[FilterRecord]]:
    """Keep candidates allowed by scope, in their original order."""
    if not isinstance(scope, OnlyDocuments):
        return list(candidates), []
    kept: List[ContentChunk] = []
    dropped: List[FilterRecord] = []
    for c in candidates:
        if scope.allows(c.source_id):
            kept.append(c)
        else:
            dropped.append(FilterRecord(chunk_id=c.id, source_id=c.source_id, reason=NOT_SELECTED))
    return kept, dropped


class FilteredRetriever:
    """
    Similarity search constrained to a document scope.

    The index is queried once per call. Filtering never re-ranks, and the
    result limit is applied after filtering, so a narrow scope can return
    fewer chunks than requested (including none).
    """

    def __init__(
        self,
        index: VectorIndex,
        *,
        observer: RetrievalObserver | None = None,
        candidate_multiplier: int = 4,
        min_candidates: int = 20,
        max_limit: int | None = None,
    ) -> None:
        self.index = index
        self.observer = observer or LoggingObserver()
        self.candidate_multiplier = max(1, int(candidate_multiplier))
        self.min_candidates = max(1, int(min_candidates))
        self.max_limit = max_limit

    def candidate_count(self, limit: int, scope: RetrievalScope) -> int:
        if isinstance(scope, OnlyDocuments):
            return max(limit * self.candidate_multiplier, self.min_candidates)
        return limit

    def _validate(self, query_text: object, result_limit: object) -> Tuple[str, int]:
        if not isinstance(query_text, str) or not query_text.strip():
            raise InvalidQuery(query_text)
        if isinstance(result_limit, bool) or not isinstance(result_limit, int) or result_limit < 1:
            raise InvalidLimit(result_limit)
        limit = result_limit
        if self.max_limit is not None:
            limit = min(limit, self.max_limit)
        return query_text, limit

    async def retrieve(
        self,
        query_text: str,
        result_limit: int,
        scope: RetrievalScope | None = None,
        *,
        observer: RetrievalObserver | None = None,
    ) -> FilteredResultSet:
        query_text, limit = self._validate(query_text, result_limit)
        if scope is None:
            scope = UNFILTERED
        sink = observer or self.observer

        try:
            candidates = await self.index.search(query_text, self.candidate_count(limit, scope))
        except Exception as e:
            logger.error("search failed on %s: %s", self.index.name, e, exc_info=True)
            raise UpstreamSearchFailure(self.index.name, e) from e

        kept, dropped = filter_candidates(list(candidates), scope)
        for record in dropped:
            notify(sink, record)

        chunks = kept[:limit]
        notify(
            sink,
            RetrievalSummary(
                query=query_text[:80],
                scope=scope.describe(),
                candidates=len(candidates),
                kept=len(kept),
                dropped=len(dropped),
                returned=len(chunks),
            ),
        )
        return FilteredResultSet(chunks=chunks, candidates=len(candidates), filtered_out=len(dropped))
