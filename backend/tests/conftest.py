"""Pytest fixtures: fake index, recording observer, chunk factory."""
from __future__ import annotations

import asyncio
from typing import List

import pytest

from rag.index_base import VectorIndex
from rag.observability import CollectingObserver, RetrievalObserver
from rag.types import ContentChunk, FilterRecord, RetrievalSummary, SourceInfo


def make_chunk(source_id: str, idx: int = 0, score: float = 1.0, text: str | None = None) -> ContentChunk:
    body = text if text is not None else f"{source_id} chunk {idx}"
    return ContentChunk(
        id=f"{source_id}#{idx}",
        source_id=source_id,
        text=body,
        snippet=body[:40],
        score=score,
        channel="vector",
    )


class FakeIndex(VectorIndex):
    """Returns its stored chunks in stored order, truncated to n."""

    def __init__(self, chunks: List[ContentChunk] | None = None, *, fail: Exception | None = None) -> None:
        self.chunks = list(chunks or [])
        self.fail = fail
        self.calls: List[tuple[str, int]] = []
        self.release: asyncio.Event | None = None

    @property
    def name(self) -> str:
        return "fake"

    async def search(self, query_text: str, n: int) -> List[ContentChunk]:
        self.calls.append((query_text, n))
        if self.release is not None:
            await self.release.wait()
        if self.fail is not None:
            raise self.fail
        return self.chunks[:n]

    async def list_sources(self) -> List[SourceInfo]:
        if self.fail is not None:
            raise self.fail
        counts: dict[str, int] = {}
        for c in self.chunks:
            counts[c.source_id] = counts.get(c.source_id, 0) + 1
        return [SourceInfo(source_id=k, chunks=v) for k, v in sorted(counts.items())]


class ExplodingObserver(RetrievalObserver):
    def chunk_filtered(self, record: FilterRecord) -> None:
        raise RuntimeError("sink down")

    def retrieval_completed(self, summary: RetrievalSummary) -> None:
        raise RuntimeError("sink down")


@pytest.fixture
def ranked_chunks() -> List[ContentChunk]:
    return [
        make_chunk("file1.pdf", 0, 0.9),
        make_chunk("file3.pdf", 0, 0.8),
        make_chunk("file2.pdf", 0, 0.7),
    ]


@pytest.fixture
def fake_index(ranked_chunks) -> FakeIndex:
    return FakeIndex(ranked_chunks)


@pytest.fixture
def collector() -> CollectingObserver:
    return CollectingObserver()
