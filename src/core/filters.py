from __future__ import annotations

import math
from dataclasses import dataclass, field

MAX_LIMIT = 1000
DEFAULT_LIMIT = 10
CUSTOMER_PAGE_SIZE = 10
PRODUCT_PAGE_SIZE = 12


@dataclass(frozen=True)
class Filter:
    """Equality predicates on the customer table. ``""`` means unconstrained."""

    segment: str = ""
    customer_id: str = ""

    @property
    def is_unconstrained(self) -> bool:
        return not self.segment and not self.customer_id

    def as_body(self) -> dict[str, str]:
        """Wire form shared by the fetch and count calls (never null/absent)."""
        return {"segment": self.segment, "customerId": self.customer_id}


UNCONSTRAINED = Filter()


def _as_text(value: object) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def normalize_filter(raw_segment: object = None, raw_customer_id: object = None) -> Filter:
    """Canonical Filter from raw form/query input.

    Blank or missing values mean "no constraint". The segment is not checked
    against a known list, so a typo simply matches nothing.
    """
    segment = _as_text(raw_segment)
    if not segment.strip():
        segment = ""
    customer_id = _as_text(raw_customer_id).strip()
    return Filter(segment=segment, customer_id=customer_id)


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float):
        # inf, nan and 1e400 fall back like any other junk
        return int(value) if math.isfinite(value) else None
    return None


def clamp_limit(value: object, default: int = DEFAULT_LIMIT) -> int:
    """Missing, non-numeric or zero limits use the default; result is in [1, MAX_LIMIT]."""
    parsed = _as_int(value)
    if not parsed:
        parsed = default
    return min(max(parsed, 1), MAX_LIMIT)


def clamp_offset(value: object) -> int:
    parsed = _as_int(value) or 0
    return max(parsed, 0)


def page_offset(page_number: int, page_size: int) -> int:
    return (max(int(page_number), 1) - 1) * page_size


@dataclass(frozen=True)
class PageRequest:
    filter: Filter = field(default_factory=Filter)
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "limit", clamp_limit(self.limit))
        object.__setattr__(self, "offset", clamp_offset(self.offset))

    @classmethod
    def for_page(
        cls, filter: Filter, page_number: int, page_size: int = CUSTOMER_PAGE_SIZE
    ) -> PageRequest:
        return cls(filter=filter, limit=page_size, offset=page_offset(page_number, page_size))

    def as_body(self) -> dict[str, object]:
        return {**self.filter.as_body(), "limit": self.limit, "offset": self.offset}
