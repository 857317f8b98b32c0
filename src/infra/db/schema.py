"""Development schema for the two tables the dashboard reads.

Production databases are populated by the external RFM scoring job; this
only exists so a fresh SQLite file (or a test database) has the same shape.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Engine

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS rfm_customers (
      CustomerID TEXT PRIMARY KEY,
      Recency INTEGER,
      Frequency INTEGER,
      MonetaryValue REAL,
      R INTEGER,
      F INTEGER,
      M INTEGER,
      RFM_Score TEXT,
      Segment TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
      id INTEGER PRIMARY KEY,
      customer_id TEXT NOT NULL,
      product_name TEXT NOT NULL,
      quantity INTEGER NOT NULL,
      price NUMERIC NOT NULL,
      image_url TEXT,
      created_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_rfm_customers_segment ON rfm_customers(Segment)",
    "CREATE INDEX IF NOT EXISTS ix_products_customer ON products(customer_id)",
)


def init_db(engine: Engine) -> None:
    with engine.begin() as conn:
        for stmt in SCHEMA_STATEMENTS:
            conn.execute(text(stmt))


def insert_customers(engine: Engine, rows: Iterable[Mapping[str, Any]]) -> int:
    rows = [dict(r) for r in rows]
    if not rows:
        return 0
    columns = list(rows[0])
    sql = (
        f"INSERT INTO rfm_customers ({', '.join(columns)}) "
        f"VALUES ({', '.join(':' + c for c in columns)})"
    )
    with engine.begin() as conn:
        conn.execute(text(sql), rows)
    return len(rows)


def insert_products(engine: Engine, rows: Iterable[Mapping[str, Any]]) -> int:
    rows = [dict(r) for r in rows]
    if not rows:
        return 0
    with engine.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO products (customer_id, product_name, quantity, price, image_url, created_at) "
                "VALUES (:customer_id, :product_name, :quantity, :price, :image_url, :created_at)"
            ),
            [{"image_url": None, "created_at": None, **r} for r in rows],
        )
    return len(rows)
