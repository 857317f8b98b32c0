"""Product catalog grid: load once, filter and page in memory (12 per page)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.dtos import ProductRecord
from core.errors import DashboardError
from core.filters import PRODUCT_PAGE_SIZE
from core.pagination import total_pages_for
from core.services.export_service import export_products_csv
from core.services.product_service import CatalogSource, aggregate_customer_spend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductFilters:
    search: str = ""
    customer: str = ""
    min_price: float | None = None
    max_price: float | None = None

    def matches(self, product: ProductRecord) -> bool:
        if self.search and self.search.lower() not in product.product_name.lower():
            return False
        if self.customer and self.customer.lower() not in product.customer_id.lower():
            return False
        if self.min_price is not None and product.price < self.min_price:
            return False
        if self.max_price is not None and product.price > self.max_price:
            return False
        return True


@dataclass(frozen=True)
class CatalogStats:
    total_products: int
    total_revenue: float
    avg_price: float
    total_quantity: int


class ProductGrid:
    def __init__(self, source: CatalogSource, *, page_size: int = PRODUCT_PAGE_SIZE) -> None:
        self._source = source
        self.page_size = page_size
        self.current_page = 1
        self.filters = ProductFilters()
        self.error: str | None = None
        self._all: list[ProductRecord] = []
        self._filtered: list[ProductRecord] = []

    def load(self) -> list[ProductRecord]:
        try:
            self._all = list(self._source.list_all_products())
        except DashboardError as exc:
            logger.warning("Failed to load products: %s", exc)
            self._all = []
            self.error = str(exc)
        else:
            self.error = None
        self._filtered = list(self._all)
        self.current_page = 1
        return self.page_items()

    @property
    def all_products(self) -> list[ProductRecord]:
        return list(self._all)

    @property
    def filtered(self) -> list[ProductRecord]:
        return list(self._filtered)

    def apply_filters(self, filters: ProductFilters) -> list[ProductRecord]:
        self.filters = filters
        self._filtered = [p for p in self._all if filters.matches(p)]
        self.current_page = 1
        return self.page_items()

    @property
    def total_pages(self) -> int:
        return total_pages_for(len(self._filtered), self.page_size)

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    def change_page(self, direction: int) -> list[ProductRecord]:
        new_page = self.current_page + direction
        if 1 <= new_page <= self.total_pages:
            self.current_page = new_page
        return self.page_items()

    def page_items(self) -> list[ProductRecord]:
        start = (self.current_page - 1) * self.page_size
        return self._filtered[start : start + self.page_size]

    def stats(self) -> CatalogStats:
        """Figures over the whole loaded catalog, not the filtered view."""
        revenue = aggregate_customer_spend(self._all)
        quantity = sum(p.quantity for p in self._all)
        return CatalogStats(
            total_products=len(self._all),
            total_revenue=revenue,
            avg_price=revenue / quantity if quantity else 0.0,
            total_quantity=quantity,
        )

    def export_csv(self) -> bytes:
        return export_products_csv(self._filtered)
