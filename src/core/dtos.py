from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

Scalar = str | int | float | None


class DTOBase(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
        strict=True,
    )


def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"not a number: {value!r}") from exc


def _to_int(value: Any) -> int | None:
    number = _to_float(value)
    return None if number is None else int(number)


class ProductRecord(DTOBase):
    """One purchased line. Numbers arrive as text from some drivers; coerced here once."""

    id: int | None = None
    customer_id: str
    product_name: str
    quantity: int
    price: float
    image_url: str | None = None
    created_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return _to_int(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, v):
        return _to_int(v) or 0

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, v):
        return _to_float(v) or 0.0

    @field_validator("customer_id", "product_name", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("image_url", mode="before")
    @classmethod
    def _blank_url(cls, v):
        if v is None or not str(v).strip():
            return None
        return str(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_created_at(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, datetime):
            return v
        if isinstance(v, date):
            return datetime(v.year, v.month, v.day)
        return datetime.fromisoformat(str(v).strip().replace("Z", "+00:00"))

    @property
    def subtotal(self) -> float:
        return self.quantity * self.price


class CustomerPage(DTOBase):
    """A fetched page of customer rows plus the columns discovered across it."""

    columns: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    limit: int
    offset: int

    @property
    def row_count(self) -> int:
        return len(self.rows)


class CustomerProductsView(DTOBase):
    customer_id: str
    products: list[ProductRecord] = Field(default_factory=list)
    total: float = 0.0


class SegmentStatistics(DTOBase):
    segment: str | None = Field(default=None, alias="Segment")
    customer_count: int = 0
    avg_recency: float | None = None
    avg_frequency: float | None = None
    avg_monetary: float | None = None

    @field_validator("customer_count", mode="before")
    @classmethod
    def _coerce_count(cls, v):
        return _to_int(v) or 0

    @field_validator("avg_recency", "avg_frequency", "avg_monetary", mode="before")
    @classmethod
    def _coerce_avg(cls, v):
        return _to_float(v)


class TopProduct(DTOBase):
    product_name: str
    total_sold: int = 0
    revenue: float = 0.0

    @field_validator("total_sold", mode="before")
    @classmethod
    def _coerce_sold(cls, v):
        return _to_int(v) or 0

    @field_validator("revenue", mode="before")
    @classmethod
    def _coerce_revenue(cls, v):
        return _to_float(v) or 0.0


class ProductStatistics(DTOBase):
    total_products: int = 0
    total_quantity: int = 0
    avg_price: float = 0.0
    total_revenue: float = 0.0
    top_products: list[TopProduct] = Field(default_factory=list)

    @field_validator("total_products", "total_quantity", mode="before")
    @classmethod
    def _coerce_ints(cls, v):
        return _to_int(v) or 0

    @field_validator("avg_price", "total_revenue", mode="before")
    @classmethod
    def _coerce_floats(cls, v):
        return _to_float(v) or 0.0


# --- Request bodies -------------------------------------------------------------


class ClientsCountBody(BaseModel):
    """Body of POST /api/clients/count (and the filter part of /api/clients)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    segment: Scalar = None
    customer_id: Scalar = Field(default=None, alias="customerId")


class ClientsQueryBody(ClientsCountBody):
    limit: Scalar = None
    offset: Scalar = None
