from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

from rag.observability import DiagnosticRecord
from rag.types import ContentChunk, FilterRecord, SourceInfo


class DiagnosticEntry(BaseModel):
    ts: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
    kind: Literal["filtered_out", "retrieval", "agent"]
    summary: str
    details: Dict[str, Any] = {}

    @classmethod
    def from_record(cls, record: DiagnosticRecord) -> "DiagnosticEntry":
        if isinstance(record, FilterRecord):
            return cls(
                kind="filtered_out",
                summary=f"dropped chunk {record.chunk_id} from {record.source_id!r}",
                details={"chunk_id": record.chunk_id, "source_id": record.source_id, "reason": record.reason},
            )
        return cls(
            kind="retrieval",
            summary=f"{record.returned} of {record.candidates} candidates returned ({record.scope})",
            details={
                "scope": record.scope,
                "candidates": record.candidates,
                "kept": record.kept,
                "dropped": record.dropped,
                "returned": record.returned,
            },
        )

    @classmethod
    def from_agent_log(cls, log: Dict[str, Any]) -> "DiagnosticEntry":
        return cls(
            kind="agent",
            summary=str(log.get("summary", "")),
            details={k: v for k, v in log.items() if k != "summary"},
        )


class APIError(BaseModel):
    code: str
    message: str
    details: Any | None = None


class APIResponse(BaseModel):
    data: Any | None = None
    error: APIError | None = None
    diagnostics: List[DiagnosticEntry] = []


class ChatRequest(BaseModel):
    question: str = Field(max_length=4000)
    top_k: int | None = None
    # None/absent: no filter. []: nothing selected, rejected before retrieval.
    documents: List[str] | None = None


class RetrievedChunkSummary(BaseModel):
    id: str
    source_id: str
    score: float
    channel: str
    snippet: str

    @classmethod
    def from_chunk(cls, c: ContentChunk) -> "RetrievedChunkSummary":
        return cls(id=c.id, source_id=c.source_id, score=float(c.score), channel=c.channel, snippet=c.snippet)


class SearchResponse(BaseModel):
    query: str
    scope: str
    candidates: int
    filtered_out: int
    results: List[RetrievedChunkSummary]


class ChatResponse(BaseModel):
    question: str
    answer: str
    scope: str
    sources: List[RetrievedChunkSummary]


class DocumentItem(BaseModel):
    source_id: str
    chunks: int
    last_updated_at: Any | None = None

    @classmethod
    def from_source(cls, s: SourceInfo) -> "DocumentItem":
        return cls(source_id=s.source_id, chunks=s.chunks, last_updated_at=s.last_updated_at)
