from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from rag.types import ContentChunk, SourceInfo


class VectorIndex(ABC):
    """Similarity search over already indexed chunks. Read-only."""

    @abstractmethod
    async def search(self, query_text: str, n: int) -> List[ContentChunk]:
        """Return up to n candidates, most relevant first."""
        raise NotImplementedError

    @abstractmethod
    async def list_sources(self) -> List[SourceInfo]:
        raise NotImplementedError

    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError
