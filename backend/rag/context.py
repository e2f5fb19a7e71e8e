from __future__ import annotations

from typing import Dict, List, Sequence

from rag.types import ContentChunk


def build_context(chunks: Sequence[ContentChunk], *, max_chars: int = 12000) -> str:
    """Render retrieved chunks grouped by source document, in first-seen order."""
    grouped: Dict[str, List[ContentChunk]] = {}
    for c in chunks:
        grouped.setdefault(c.source_id, []).append(c)

    parts: List[str] = []
    used = 0
    for source_id, items in grouped.items():
        body = "\n\n".join([f"- (#{c.id} score={c.score:.3f}) {c.text.strip()}" for c in items])
        section = f"## {source_id}\n{body}".strip()
        if parts and used + len(section) > max_chars:
            break
        parts.append(section)
        used += len(section)

    return "\n\n".join(parts).strip()
