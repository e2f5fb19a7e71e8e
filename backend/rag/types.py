from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Union


@dataclass(frozen=True)
class ContentChunk:
    id: str
    source_id: str  # source document identifier, matched byte-exact
    text: str
    snippet: str
    score: float
    channel: str  # vector|keyword
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class DocumentSelection:
    """Set of document identifiers chosen by the caller for one request."""

    ids: FrozenSet[str] = frozenset()

    @classmethod
    def of(cls, ids: Iterable[str]) -> "DocumentSelection":
        return cls(frozenset(ids))

    def __contains__(self, source_id: object) -> bool:
        return source_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.ids))

    @property
    def is_empty(self) -> bool:
        return not self.ids


@dataclass(frozen=True)
class Unfiltered:
    def describe(self) -> str:
        return "unfiltered"


@dataclass(frozen=True)
class OnlyDocuments:
    selection: DocumentSelection

    def __post_init__(self) -> None:
        if self.selection.is_empty:
            raise ValueError("OnlyDocuments needs a non-empty selection; pass it through SelectionGate first")

    def allows(self, source_id: str) -> bool:
        return source_id in self.selection

    def describe(self) -> str:
        return "only:" + ",".join(self.selection)


RetrievalScope = Union[Unfiltered, OnlyDocuments]

UNFILTERED = Unfiltered()


@dataclass(frozen=True)
class FilterRecord:
    chunk_id: str
    source_id: str
    reason: str


@dataclass(frozen=True)
class RetrievalSummary:
    query: str
    scope: str
    candidates: int
    kept: int
    dropped: int
    returned: int


@dataclass
class FilteredResultSet:
    chunks: List[ContentChunk]
    candidates: int = 0
    filtered_out: int = 0

    def __len__(self) -> int:
        return len(self.chunks)

    def __iter__(self) -> Iterator[ContentChunk]:
        return iter(self.chunks)

    def __getitem__(self, idx: int) -> ContentChunk:
        return self.chunks[idx]

    @property
    def source_ids(self) -> List[str]:
        seen: List[str] = []
        for c in self.chunks:
            if c.source_id not in seen:
                seen.append(c.source_id)
        return seen


@dataclass
class SourceInfo:
    source_id: str
    chunks: int
    last_updated_at: dt.datetime | str | None = None
