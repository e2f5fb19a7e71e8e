from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Tuple

from sqlalchemy import text as sql_text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from rag.index_base import VectorIndex
from rag.types import ContentChunk, SourceInfo

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def query_tokens(query: str, *, max_tokens: int = 8) -> List[str]:
    return [t for t in _TOKEN_RE.findall(query) if len(t) >= 2][:max_tokens]


def fts_match_expr(tokens: List[str]) -> str:
    # Quote each token so user punctuation never reaches the FTS parser.
    return " OR ".join('"{}"'.format(t.replace('"', '""')) for t in tokens)


class KeywordIndex(VectorIndex):
    """Keyword search over the rag_chunks table (SQLite FTS5, bm25 order)."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @property
    def name(self) -> str:
        return "keyword"

    def _ranked_ids(self, db: Session, tokens: List[str], n: int) -> List[Tuple[str, float]]:
        try:
            rows = db.execute(
                sql_text(
                    """
                    SELECT chunk_id, bm25(rag_chunks_fts) AS rank
                    FROM rag_chunks_fts
                    WHERE rag_chunks_fts MATCH :q
                    ORDER BY rank ASC, chunk_id ASC
                    LIMIT :k
                    """
                ),
                {"q": fts_match_expr(tokens), "k": n},
            ).fetchall()
            # bm25() is negative, more negative for better matches.
            ranked = []
            for cid, rank in rows:
                s = max(0.0, -float(rank or 0.0))
                ranked.append((str(cid), s / (1.0 + s)))
            return ranked
        except OperationalError:
            logger.debug("FTS5 query failed; using substring fallback", exc_info=True)
            db.rollback()

        # Fallback (no FTS5): naive substring scoring over rag_chunks.
        candidates = db.execute(sql_text("SELECT id, text FROM rag_chunks")).fetchall()
        scored = []
        for cid, txt in candidates:
            hit = sum((txt or "").count(tok) for tok in tokens)
            if hit > 0:
                scored.append((hit, str(cid)))
        scored.sort(key=lambda x: (-x[0], x[1]))
        return [(cid, float(hit) / (1.0 + hit)) for hit, cid in scored[:n]]

    def _query(self, query_text: str, n: int) -> List[ContentChunk]:
        tokens = query_tokens(query_text)
        if not tokens:
            return []

        with self._session_factory() as db:
            ranked = self._ranked_ids(db, tokens, n)
            if not ranked:
                return []
            chunk_ids = [cid for cid, _ in ranked]
            chunk_rows = db.execute(
                sql_text(
                    "SELECT id, source_id, text, snippet, metadata_json FROM rag_chunks WHERE id IN ({})".format(
                        ",".join([f":id{i}" for i in range(len(chunk_ids))])
                    )
                ),
                {f"id{i}": cid for i, cid in enumerate(chunk_ids)},
            ).fetchall()
        by_id = {str(r[0]): r for r in chunk_rows}

        out: List[ContentChunk] = []
        for cid, score in ranked:
            row = by_id.get(cid)
            if not row:
                continue
            meta: Dict[str, Any] = json.loads(row[4] or "{}")
            out.append(
                ContentChunk(
                    id=cid,
                    source_id=str(row[1]),
                    text=str(row[2]),
                    snippet=str(row[3]),
                    score=score,
                    channel="keyword",
                    metadata=meta,
                )
            )
        return out

    def _sources(self) -> List[SourceInfo]:
        with self._session_factory() as db:
            rows = db.execute(
                sql_text(
                    """
                    SELECT source_id, COUNT(1) AS cnt, MAX(created_at) AS last_ts
                    FROM rag_chunks
                    GROUP BY source_id
                    ORDER BY source_id
                    """
                )
            ).fetchall()
        return [SourceInfo(source_id=str(r[0]), chunks=int(r[1]), last_updated_at=r[2]) for r in rows]

    async def search(self, query_text: str, n: int) -> List[ContentChunk]:
        return await asyncio.to_thread(self._query, query_text, n)

    async def list_sources(self) -> List[SourceInfo]:
        return await asyncio.to_thread(self._sources)
