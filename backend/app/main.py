from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.router import api_router
from app.core.config import settings
from app.core.logging import setup_logging
from app.schemas import APIError, APIResponse
from rag.errors import RetrievalError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    if settings.search_backend == "keyword":
        from app.db.init_db import init_db
        from app.db.session import get_engine

        init_db(get_engine())
    logger.info("docscope backend ready (search_backend=%s)", settings.search_backend)
    yield


async def retrieval_error_handler(request: Request, exc: RetrievalError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    body = APIResponse(data=None, error=APIError(code=exc.code, message=str(exc)), diagnostics=[])
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


_LIMIT_FIELDS = {"k", "top_k"}
_QUERY_FIELDS = {"q", "question"}


def validation_error_code(errors) -> str:
    fields = {part for err in errors for part in err.get("loc", ())}
    if fields & _LIMIT_FIELDS:
        return "invalid_limit"
    if fields & _QUERY_FIELDS:
        return "invalid_query"
    return "invalid_request"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    error = APIError(
        code=validation_error_code(errors),
        message="request parameters are invalid",
        details={"errors": jsonable_encoder(errors)},
    )
    body = APIResponse(data=None, error=error, diagnostics=[])
    return JSONResponse(status_code=400, content=body.model_dump(mode="json"))


def create_app() -> FastAPI:
    app = FastAPI(title="docscope", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RetrievalError, retrieval_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(api_router, prefix="/api")

    @app.get("/api/health")
    def health():
        return {"status": "ok", "search_backend": settings.search_backend}

    return app


app = create_app()
