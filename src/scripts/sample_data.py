"""
Populate the configured database with sample RFM customers and products.

Creates the two tables when missing, then inserts a deterministic set of
customers across a few segments plus a handful of product lines. Re-running
against the same database fails on the customer primary key; point
APP_DATABASE_URL at a fresh file for a clean sample.

Usage:

    PYTHONPATH=src python3 -m scripts.sample_data
"""

from __future__ import annotations

import logging

from app.logging_config import setup_logging
from app.settings import get_settings
from infra.db.engine import create_db_engine
from infra.db.schema import init_db, insert_customers, insert_products

logger = logging.getLogger(__name__)

# segment -> (count, recency, frequency, monetary)
SEGMENTS = {
    "Champions": (23, 5, 40, 5200.0),
    "Loyal Customers": (15, 20, 25, 2100.0),
    "At Risk": (8, 120, 6, 640.0),
    "Hibernating": (4, 300, 2, 90.5),
}

PRODUCTS = [
    ("C0001", "Wireless Mouse", 2, "9.99", "2024-03-02 10:15:00"),
    ("C0001", "USB-C Hub", 1, "5", "2024-03-05 09:00:00"),
    ("C0002", "Mechanical Keyboard", 1, "89.90", "2024-02-11 14:30:00"),
    ("C0002", "Desk Mat, XL", 3, "12.50", "2024-02-12 08:45:00"),
    ("C0003", "27\" Monitor", 1, "229.00", "2024-01-20 16:10:00"),
]


def sample_customers() -> list[dict]:
    rows: list[dict] = []
    n = 0
    for segment, (count, recency, frequency, monetary) in SEGMENTS.items():
        for i in range(count):
            n += 1
            rows.append(
                {
                    "CustomerID": f"C{n:04d}",
                    "Recency": recency + i,
                    "Frequency": frequency,
                    "MonetaryValue": round(monetary + i * 10.25, 2),
                    "Segment": segment,
                }
            )
    return rows


def sample_products() -> list[dict]:
    return [
        {
            "customer_id": cid,
            "product_name": name,
            "quantity": qty,
            "price": price,
            "image_url": None,
            "created_at": created_at,
        }
        for cid, name, qty, price, created_at in PRODUCTS
    ]


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    engine = create_db_engine(settings)
    init_db(engine)
    customers = insert_customers(engine, sample_customers())
    products = insert_products(engine, sample_products())
    logger.info("Sample data inserted: %d customers, %d products", customers, products)
    engine.dispose()


if __name__ == "__main__":
    main()
