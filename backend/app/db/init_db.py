from __future__ import annotations

import logging

from sqlalchemy import Engine
from sqlalchemy.exc import OperationalError

from app.db.base import Base
from app.db import models  # noqa: F401  registers tables on Base.metadata

logger = logging.getLogger(__name__)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)

    # SQLite FTS5 for keyword retrieval.
    with engine.begin() as conn:
        try:
            conn.exec_driver_sql(
                """
                CREATE VIRTUAL TABLE IF NOT EXISTS rag_chunks_fts
                USING fts5(
                  chunk_id UNINDEXED,
                  source_id UNINDEXED,
                  text
                );
                """
            )
        except OperationalError:
            # SQLite builds without FTS5; keyword search falls back to substring scoring.
            logger.warning("FTS5 not available; keyword index will use substring fallback")
