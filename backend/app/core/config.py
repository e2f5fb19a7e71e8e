from __future__ import annotations

from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env", "../.env"), extra="ignore")

    db_path: str = "data/app.db"
    backend_cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"

    mock_llm: bool = True
    llm_api_key: str | None = None
    llm_base_url: str | None = None
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.2

    # Retrieval
    search_backend: Literal["chroma", "keyword"] = "chroma"
    chroma_persist_dir: str = "data/chroma"
    chroma_collection: str = "documents"
    rag_source_field: str = "source_id"  # chunk metadata key holding the document identifier
    embeddings_provider: str = "mock"  # local_bge_m3|mock
    bge_m3_model_name: str = "BAAI/bge-m3"
    rag_device: str | None = None  # e.g. "cpu" or "cuda"
    rag_default_top_k: int = 5
    rag_max_top_k: int = 50
    rag_candidate_multiplier: int = 4
    rag_min_candidates: int = 20
    rag_snippet_chars: int = 240
    rag_context_max_chars: int = 12000

    # When on, a request without any document parameter is treated as "nothing selected".
    require_document_selection: bool = False

    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.backend_cors_origins.split(",") if o.strip()]


settings = Settings()
