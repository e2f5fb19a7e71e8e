from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence, Union

from rag.types import FilterRecord, RetrievalSummary

logger = logging.getLogger(__name__)

DiagnosticRecord = Union[FilterRecord, RetrievalSummary]


class RetrievalObserver(ABC):
    @abstractmethod
    def chunk_filtered(self, record: FilterRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def retrieval_completed(self, summary: RetrievalSummary) -> None:
        raise NotImplementedError


class NullObserver(RetrievalObserver):
    def chunk_filtered(self, record: FilterRecord) -> None:
        pass

    def retrieval_completed(self, summary: RetrievalSummary) -> None:
        pass


class LoggingObserver(RetrievalObserver):
    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def chunk_filtered(self, record: FilterRecord) -> None:
        self._log.debug(
            "chunk filtered out: chunk=%s source=%r reason=%s",
            record.chunk_id,
            record.source_id,
            record.reason,
        )

    def retrieval_completed(self, summary: RetrievalSummary) -> None:
        self._log.info(
            "retrieval done: scope=%s candidates=%d kept=%d dropped=%d returned=%d",
            summary.scope,
            summary.candidates,
            summary.kept,
            summary.dropped,
            summary.returned,
            extra={"query_text": summary.query},
        )


class CollectingObserver(RetrievalObserver):
    """Keeps the records of one request so they can be echoed to the client."""

    def __init__(self) -> None:
        self.records: List[DiagnosticRecord] = []

    def chunk_filtered(self, record: FilterRecord) -> None:
        self.records.append(record)

    def retrieval_completed(self, summary: RetrievalSummary) -> None:
        self.records.append(summary)

    @property
    def filtered(self) -> List[FilterRecord]:
        return [r for r in self.records if isinstance(r, FilterRecord)]


def notify(observer: RetrievalObserver, record: DiagnosticRecord) -> None:
    """Deliver one record; a failing observer is logged and otherwise ignored."""
    try:
        if isinstance(record, FilterRecord):
            observer.chunk_filtered(record)
        else:
            observer.retrieval_completed(record)
    except Exception:
        logger.warning("observer %s failed on %s", type(observer).__name__, type(record).__name__, exc_info=True)


class MultiObserver(RetrievalObserver):
    def __init__(self, observers: Sequence[RetrievalObserver]) -> None:
        self.observers = list(observers)

    def chunk_filtered(self, record: FilterRecord) -> None:
        for o in self.observers:
            notify(o, record)

    def retrieval_completed(self, summary: RetrievalSummary) -> None:
        for o in self.observers:
            notify(o, summary)
