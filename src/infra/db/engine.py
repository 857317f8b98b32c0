# filepath: src/infra/db/engine.py
from __future__ import annotations

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from app.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def create_db_engine(settings: Settings | None = None) -> Engine:
    """
    Build the shared engine. The pool is the bounded resource: at most
    ``db_pool_size`` connections, no overflow, callers wait up to
    ``db_pool_timeout`` seconds for one to free up.
    """
    settings = settings or get_settings()
    url = settings.database_url
    engine_kwargs: dict[str, object] = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    if not _is_memory_sqlite(url):
        engine_kwargs.update(
            {
                "pool_size": settings.db_pool_size,
                "max_overflow": 0,
                "pool_timeout": settings.db_pool_timeout,
                "pool_recycle": 1800,
            }
        )
    engine = create_engine(url, **engine_kwargs)

    if settings.debug:

        @event.listens_for(engine, "checkout")
        def _receive_checkout(dbapi_connection, connection_record, connection_proxy):  # type: ignore[no-redef]
            logger.debug("DB connection checkout from pool")

    return engine


def ping(engine: Engine) -> None:
    """Round-trip ``SELECT 1``; raises on a dead backend."""
    with engine.connect() as conn:
        conn.exec_driver_sql("SELECT 1")
