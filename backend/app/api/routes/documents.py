from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_chat_service
from app.schemas import APIResponse, DocumentItem
from app.services.chat_service import ChatService


router = APIRouter()


@router.get("/documents", response_model=APIResponse)
async def list_documents(service: ChatService = Depends(get_chat_service)):
    sources = await service.documents()
    return APIResponse(data=[DocumentItem.from_source(s).model_dump() for s in sources], error=None, diagnostics=[])
