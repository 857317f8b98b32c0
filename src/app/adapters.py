"""Ingestion boundary: storage rows in, typed records out.

Numeric coercion of product rows happens here (through the DTO validators)
and nowhere else.
"""

from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from core.dtos import CustomerPage, ProductRecord, SegmentStatistics


def to_scalar(value: Any) -> Any:
    """Driver values as JSON-friendly scalars (Decimal -> float, dates -> ISO text)."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def row_to_customer(row: Mapping) -> dict[str, Any]:
    return {str(k): to_scalar(v) for k, v in row.items()}


def discover_columns(rows: Iterable[Mapping]) -> list[str]:
    """Union of keys across every row, in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(str(key), None)
    return list(seen)


def rows_to_customer_page(rows: Iterable[Mapping], *, limit: int, offset: int) -> CustomerPage:
    records = [row_to_customer(r) for r in rows]
    return CustomerPage(columns=discover_columns(records), rows=records, limit=limit, offset=offset)


def row_to_product(row: Mapping) -> ProductRecord:
    return ProductRecord.model_validate(dict(row))


def row_to_segment_stats(row: Mapping) -> SegmentStatistics:
    return SegmentStatistics.model_validate(dict(row))


def rows_to(dto_fn: Callable[[Mapping], object], rows: Iterable[Mapping]) -> list[object]:
    return [dto_fn(row) for row in rows]
