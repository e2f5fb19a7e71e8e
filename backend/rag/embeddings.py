from __future__ import annotations

import hashlib
import logging
import random
from abc import ABC, abstractmethod
from typing import List

logger = logging.getLogger(__name__)


class Embeddings(ABC):
    @abstractmethod
    def embed_query(self, query: str) -> List[float]:
        raise NotImplementedError

    @property
    @abstractmethod
    def model_name(self) -> str:
        raise NotImplementedError


class MockEmbeddings(Embeddings):
    """Deterministic hash vectors; good enough for dev and tests."""

    def __init__(self, *, dim: int = 256) -> None:
        self._dim = dim

    @property
    def model_name(self) -> str:
        return f"mock-hash-{self._dim}"

    def embed_query(self, query: str) -> List[float]:
        seed = int(hashlib.sha256(query.encode("utf-8")).hexdigest()[:16], 16)
        rng = random.Random(seed)
        return [rng.uniform(-1.0, 1.0) for _ in range(self._dim)]


class BgeM3Embeddings(Embeddings):
    def __init__(self, *, model_name: str = "BAAI/bge-m3", device: str | None = None) -> None:
        try:
            from sentence_transformers import SentenceTransformer  # type: ignore
        except Exception as e:  # pragma: no cover
            raise RuntimeError("sentence-transformers is required for local_bge_m3") from e

        self._model_name = model_name
        self._model = SentenceTransformer(model_name, device=device)

    @property
    def model_name(self) -> str:
        return self._model_name

    def embed_query(self, query: str) -> List[float]:
        vectors = self._model.encode(
            [query],
            normalize_embeddings=True,
            convert_to_numpy=True,
            show_progress_bar=False,
        )
        return vectors[0].tolist()


def get_embeddings(provider: str, *, model_name: str = "BAAI/bge-m3", device: str | None = None) -> Embeddings:
    if provider == "local_bge_m3":
        try:
            return BgeM3Embeddings(model_name=model_name, device=device)
        except Exception:
            # Query vectors will not match a bge-m3 collection; keep serving but make it loud.
            logger.warning("embeddings %s failed to load; falling back to mock", model_name, exc_info=True)
            return MockEmbeddings()
    if provider != "mock":
        logger.warning("unknown embeddings provider %r; using mock", provider)
    return MockEmbeddings()
