from __future__ import annotations

import os
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings


def _sqlite_url(db_path: str) -> str:
    # Ensure directory exists (esp. for Docker volume mount).
    os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
    return f"sqlite:///{db_path}"


def make_engine(db_path: str) -> Engine:
    return create_engine(
        _sqlite_url(db_path),
        connect_args={"check_same_thread": False},
    )


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@lru_cache
def get_engine() -> Engine:
    return make_engine(settings.db_path)


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return make_session_factory(get_engine())
