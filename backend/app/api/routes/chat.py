from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_chat_service
from app.schemas import (
    APIResponse,
    ChatRequest,
    ChatResponse,
    DiagnosticEntry,
    RetrievedChunkSummary,
    SearchResponse,
)
from app.services.chat_service import ChatService
from rag.selection import selection_param


router = APIRouter()


@router.get("/search", response_model=APIResponse)
async def search(
    q: str = "",
    k: int | None = None,
    doc: List[str] | None = Query(default=None, description="Repeat once per selected document"),
    service: ChatService = Depends(get_chat_service),
):
    found = await service.search(q, k, selection_param(doc))
    payload = SearchResponse(
        query=found.query,
        scope=found.scope.describe(),
        candidates=found.results.candidates,
        filtered_out=found.results.filtered_out,
        results=[RetrievedChunkSummary.from_chunk(c) for c in found.results],
    )
    return APIResponse(
        data=payload.model_dump(),
        error=None,
        diagnostics=[DiagnosticEntry.from_record(r) for r in found.diagnostics],
    )


@router.post("/chat", response_model=APIResponse)
async def chat(payload: ChatRequest, service: ChatService = Depends(get_chat_service)):
    outcome = await service.chat(payload.question, payload.top_k, selection_param(payload.documents))
    data = ChatResponse(
        question=outcome.question,
        answer=outcome.answer,
        scope=outcome.search.scope.describe(),
        sources=[RetrievedChunkSummary.from_chunk(c) for c in outcome.search.results],
    )
    diagnostics = [DiagnosticEntry.from_record(r) for r in outcome.search.diagnostics]
    diagnostics.extend(DiagnosticEntry.from_agent_log(log) for log in outcome.logs)
    return APIResponse(data=data.model_dump(), error=None, diagnostics=diagnostics)
