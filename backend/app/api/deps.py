from __future__ import annotations

from functools import lru_cache

from app.agents.answer_agent import AnswerAgent
from app.core.config import settings
from app.db.session import get_session_factory
from app.services.chat_service import ChatService
from rag.factory import build_index, build_retriever


@lru_cache
def get_chat_service() -> ChatService:
    session_factory = get_session_factory() if settings.search_backend == "keyword" else None
    index = build_index(settings, session_factory=session_factory)
    return ChatService(
        build_retriever(settings, index),
        answer_agent=AnswerAgent(context_max_chars=settings.rag_context_max_chars),
        require_selection=settings.require_document_selection,
        default_top_k=settings.rag_default_top_k,
    )
