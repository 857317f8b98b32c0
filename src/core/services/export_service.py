from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from core.dtos import ProductRecord
from core.errors import EmptyResultError
from core.filters import MAX_LIMIT, Filter, PageRequest
from core.services.customer_service import CustomerSource

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_LIMIT = 10000
PRODUCT_EXPORT_HEADERS = ("Product Name", "Customer ID", "Quantity", "Price", "Subtotal", "Date")


@dataclass(frozen=True)
class ExportResult:
    """CSV bytes of one export plus its row count and whether the row cap cut it short."""

    data: bytes
    rows: int
    truncated: bool = False


def export_filename(prefix: str = "customers", today: date | None = None) -> str:
    today = today or date.today()
    return f"{prefix}_{today.isoformat()}.csv"


def _cell(value: Any) -> Any:
    return "" if value is None else value


def rows_to_csv(columns: Sequence[str], rows: Iterable[Mapping[str, Any]], *, bom: bool = False) -> bytes:
    """
    One header line, one line per row. Fields holding the delimiter, a quote
    or a newline are quoted and inner quotes doubled; everything else is bare.
    """
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(columns)
    for r in rows:
        writer.writerow([_cell(r.get(col)) for col in columns])
    data = out.getvalue().encode("utf-8")
    # UTF-8 BOM for Excel
    return ("\ufeff".encode() + data) if bom else data


def export_products_csv(products: Iterable[ProductRecord], *, bom: bool = False) -> bytes:
    rows = [
        {
            "Product Name": p.product_name,
            "Customer ID": p.customer_id,
            "Quantity": p.quantity,
            "Price": f"{p.price:.2f}",
            "Subtotal": f"{p.subtotal:.2f}",
            "Date": p.created_at.date().isoformat() if p.created_at else "",
        }
        for p in products
    ]
    if not rows:
        raise EmptyResultError("No products to export")
    return rows_to_csv(PRODUCT_EXPORT_HEADERS, rows, bom=bom)


class ExportService:
    """
    Full-result CSV export. Issues the ordinary fetch path once with a large
    limit; the planner still caps it at MAX_LIMIT rows.
    """

    def __init__(
        self,
        source: CustomerSource,
        *,
        export_limit: int = DEFAULT_EXPORT_LIMIT,
        bom: bool = False,
    ) -> None:
        self._source = source
        self._export_limit = export_limit
        self._bom = bom

    def export_all(self, filter: Filter) -> ExportResult:
        page = self._source.fetch_rows(PageRequest(filter=filter, limit=self._export_limit, offset=0))
        if not page.rows:
            raise EmptyResultError("No data to export")

        truncated = page.row_count >= MAX_LIMIT and self._export_limit > MAX_LIMIT
        if truncated:
            logger.warning(
                "Export hit the %d row cap (requested %d); output may be truncated",
                MAX_LIMIT,
                self._export_limit,
            )
        logger.info("Exported %d customers", page.row_count)
        return ExportResult(
            data=rows_to_csv(page.columns, page.rows, bom=self._bom),
            rows=page.row_count,
            truncated=truncated,
        )
