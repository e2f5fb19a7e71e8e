from __future__ import annotations

import asyncio
import logging
import os
from collections import Counter
from typing import Any, Dict, List

from rag.embeddings import Embeddings
from rag.index_base import VectorIndex
from rag.types import ContentChunk, SourceInfo

logger = logging.getLogger(__name__)


def _snippet(text: str, n: int) -> str:
    return text[:n] + ("…" if len(text) > n else "")


class ChromaIndex(VectorIndex):
    """Queries an existing chromadb collection.

    The collection is never created or modified here; a missing collection
    reads as empty.
    """

    def __init__(
        self,
        *,
        embeddings: Embeddings,
        collection_name: str = "documents",
        persist_dir: str = "data/chroma",
        source_field: str = "source_id",
        snippet_chars: int = 240,
        client: Any | None = None,
    ) -> None:
        self._embeddings = embeddings
        self._collection_name = collection_name
        self._persist_dir = persist_dir
        self._source_field = source_field
        self._snippet_chars = snippet_chars
        self._chroma = client

    @property
    def name(self) -> str:
        return f"chroma:{self._collection_name}"

    def _get_chroma(self):
        if self._chroma is not None:
            return self._chroma
        try:
            import chromadb  # type: ignore
        except Exception as e:  # pragma: no cover
            raise RuntimeError("chromadb is required") from e

        os.makedirs(self._persist_dir, exist_ok=True)
        self._chroma = chromadb.PersistentClient(path=self._persist_dir)
        return self._chroma

    def _collection(self):
        client = self._get_chroma()
        # list_collections() yields names or Collection objects depending on the chromadb version.
        names = {getattr(c, "name", c) for c in client.list_collections()}
        if self._collection_name not in names:
            logger.info("chroma collection %r not found; treating as empty", self._collection_name)
            return None
        return client.get_collection(name=self._collection_name)

    def _query(self, query_text: str, n: int) -> List[ContentChunk]:
        collection = self._collection()
        if collection is None:
            return []
        total = collection.count()
        if total == 0:
            return []
        qvec = self._embeddings.embed_query(query_text)
        res = collection.query(
            query_embeddings=[qvec],
            n_results=min(n, total),
            include=["documents", "metadatas", "distances"],
        )

        out: List[ContentChunk] = []
        ids = (res.get("ids") or [[]])[0]
        docs = (res.get("documents") or [[]])[0]
        metas = (res.get("metadatas") or [[]])[0]
        dists = (res.get("distances") or [[]])[0]
        for cid, doc, meta, dist in zip(ids, docs, metas, dists):
            meta = dict(meta or {})
            text = str(doc or "")
            out.append(
                ContentChunk(
                    id=str(cid),
                    source_id=str(meta.get(self._source_field, "")),
                    text=text,
                    snippet=_snippet(text, self._snippet_chars),
                    score=1.0 / (1.0 + float(dist if dist is not None else 1.0)),
                    channel="vector",
                    metadata=meta,
                )
            )
        return out

    def _sources(self) -> List[SourceInfo]:
        collection = self._collection()
        if collection is None:
            return []
        res = collection.get(include=["metadatas"])
        counts: Dict[str, int] = Counter()
        latest: Dict[str, str] = {}
        for meta in res.get("metadatas") or []:
            meta = meta or {}
            sid = str(meta.get(self._source_field, ""))
            counts[sid] += 1
            ts = meta.get("created_at")
            if ts and str(ts) > latest.get(sid, ""):
                latest[sid] = str(ts)
        return [SourceInfo(source_id=sid, chunks=cnt, last_updated_at=latest.get(sid)) for sid, cnt in sorted(counts.items())]

    async def search(self, query_text: str, n: int) -> List[ContentChunk]:
        return await asyncio.to_thread(self._query, query_text, n)

    async def list_sources(self) -> List[SourceInfo]:
        return await asyncio.to_thread(self._sources)
