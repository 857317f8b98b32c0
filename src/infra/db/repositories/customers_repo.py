from __future__ import annotations

from core.query_planner import CUSTOMER_TABLE, CountQuery, FetchQuery

from .base import BaseRepo


class CustomersRepo(BaseRepo):
    def fetch(self, query: FetchQuery) -> list[dict]:
        """Rows of one page, every column the table exposes (``SELECT *``)."""
        return self._all(query.sql, query.params)

    def count(self, query: CountQuery) -> int:
        row = self._one(query.sql, query.params)
        return int(row["total"]) if row and row["total"] is not None else 0

    def distinct_segments(self) -> list[str]:
        rows = self._all(f"SELECT DISTINCT Segment FROM {CUSTOMER_TABLE} ORDER BY Segment")
        return [r["Segment"] for r in rows if r["Segment"] is not None]

    def segment_statistics(self) -> list[dict]:
        """
        Per-segment aggregates.
        Columns: Segment, customer_count, avg_recency, avg_frequency, avg_monetary
        """
        return self._all(
            f"""
            SELECT Segment,
                   COUNT(*)           AS customer_count,
                   AVG(Recency)       AS avg_recency,
                   AVG(Frequency)     AS avg_frequency,
                   AVG(MonetaryValue) AS avg_monetary
            FROM {CUSTOMER_TABLE}
            GROUP BY Segment
            ORDER BY customer_count DESC
            """
        )
