from __future__ import annotations

from .base import BaseRepo

_PRODUCT_COLUMNS = "id, customer_id, product_name, quantity, price, image_url, created_at"


class ProductsRepo(BaseRepo):
    def for_customer(self, customer_id: str) -> list[dict]:
        return self._all(
            f"""
            SELECT {_PRODUCT_COLUMNS}
            FROM products
            WHERE customer_id = :customer_id
            ORDER BY created_at DESC, id DESC
            """,
            {"customer_id": customer_id},
        )

    def list_page(self, *, limit: int, offset: int) -> list[dict]:
        return self._all(
            f"""
            SELECT {_PRODUCT_COLUMNS}
            FROM products
            ORDER BY created_at DESC, id DESC
            LIMIT :limit OFFSET :offset
            """,
            {"limit": limit, "offset": offset},
        )

    def totals(self) -> dict:
        """Columns: total_products, total_quantity, avg_price, total_revenue"""
        row = self._one(
            """
            SELECT COUNT(*)                        AS total_products,
                   COALESCE(SUM(quantity), 0)      AS total_quantity,
                   AVG(price)                      AS avg_price,
                   COALESCE(SUM(price * quantity), 0) AS total_revenue
            FROM products
            """
        )
        return row or {}

    def top_products(self, limit: int = 10) -> list[dict]:
        """Columns: product_name, total_sold, revenue (by quantity sold, desc)"""
        return self._all(
            """
            SELECT product_name,
                   SUM(quantity)         AS total_sold,
                   SUM(price * quantity) AS revenue
            FROM products
            GROUP BY product_name
            ORDER BY total_sold DESC, product_name
            LIMIT :limit
            """,
            {"limit": limit},
        )
