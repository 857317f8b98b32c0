from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class BaseRepo:
    """Raw-SQL helpers. Each call checks a connection out of the pool and returns it."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _one(self, sql: str, params: Mapping[str, Any] | None = None) -> dict | None:
        logger.debug("SQL: %s | params=%s", sql, params)
        with self.engine.connect() as conn:
            row = conn.execute(text(sql), dict(params or {})).mappings().first()
        return dict(row) if row is not None else None

    def _all(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict]:
        logger.debug("SQL: %s | params=%s", sql, params)
        with self.engine.connect() as conn:
            rows = conn.execute(text(sql), dict(params or {})).mappings().all()
        return [dict(r) for r in rows]
