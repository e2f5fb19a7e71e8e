from __future__ import annotations

from typing import Any

from rag.embeddings import get_embeddings
from rag.index_base import VectorIndex
from rag.index_chroma import ChromaIndex
from rag.index_keyword import KeywordIndex
from rag.observability import RetrievalObserver
from rag.retriever import FilteredRetriever


def build_index(settings: Any, *, session_factory=None) -> VectorIndex:
    backend = getattr(settings, "search_backend", "chroma")
    if backend == "keyword":
        if session_factory is None:
            raise ValueError("keyword backend needs a session factory")
        return KeywordIndex(session_factory)
    if backend == "chroma":
        embeddings = get_embeddings(
            getattr(settings, "embeddings_provider", "mock"),
            model_name=getattr(settings, "bge_m3_model_name", "BAAI/bge-m3"),
            device=getattr(settings, "rag_device", None),
        )
        return ChromaIndex(
            embeddings=embeddings,
            collection_name=getattr(settings, "chroma_collection", "documents"),
            persist_dir=getattr(settings, "chroma_persist_dir", "data/chroma"),
            source_field=getattr(settings, "rag_source_field", "source_id"),
            snippet_chars=int(getattr(settings, "rag_snippet_chars", 240)),
        )
    raise ValueError(f"Unknown search backend '{backend}'")


def build_retriever(settings: Any, index: VectorIndex, observer: RetrievalObserver | None = None) -> FilteredRetriever:
    return FilteredRetriever(
        index,
        observer=observer,
        candidate_multiplier=int(getattr(settings, "rag_candidate_multiplier", 4)),
        min_candidates=int(getattr(settings, "rag_min_candidates", 20)),
        max_limit=getattr(settings, "rag_max_top_k", None),
    )
