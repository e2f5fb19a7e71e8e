from fastapi import APIRouter

from app.api.routes import chat, documents

api_router = APIRouter()
api_router.include_router(chat.router, tags=["chat"])
api_router.include_router(documents.router, tags=["documents"])
