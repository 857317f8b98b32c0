from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from core.dtos import CustomerProductsView, ProductRecord, ProductStatistics
from core.errors import PRODUCT_STATS_ERROR_CODE, PRODUCTS_ERROR_CODE, ProductFetchError
from core.filters import clamp_limit, clamp_offset

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_LIMIT = 100


class ProductsRepo(Protocol):
    def for_customer(self, customer_id: str) -> list[ProductRecord]: ...
    def list_page(self, *, limit: int, offset: int) -> list[ProductRecord]: ...
    def statistics(self) -> ProductStatistics: ...


class CustomerProductsSource(Protocol):
    def customer_products_view(self, customer_id: str) -> CustomerProductsView: ...


class CatalogSource(Protocol):
    def list_all_products(self, limit: object = ..., offset: object = ...) -> list[ProductRecord]: ...


def aggregate_customer_spend(products: Iterable[ProductRecord]) -> float:
    """sum(quantity * price) in plain float arithmetic; round only for display."""
    return sum((p.quantity * p.price for p in products), 0.0)


class ProductService:
    def __init__(self, products: ProductsRepo) -> None:
        self._products = products

    def fetch_products_for_customer(self, customer_id: str) -> list[ProductRecord]:
        try:
            products = self._products.for_customer(str(customer_id))
        except Exception as exc:
            logger.error("Error fetching products for customer %s: %s", customer_id, exc)
            raise ProductFetchError("Failed to fetch products") from exc
        logger.info("Found %d products for customer %s", len(products), customer_id)
        return products

    def customer_products_view(self, customer_id: str) -> CustomerProductsView:
        products = self.fetch_products_for_customer(customer_id)
        # Aggregated even when empty: the total is then 0.0
        return CustomerProductsView(
            customer_id=str(customer_id),
            products=products,
            total=aggregate_customer_spend(products),
        )

    def list_all_products(self, limit: object = DEFAULT_CATALOG_LIMIT, offset: object = 0) -> list[ProductRecord]:
        safe_limit = clamp_limit(limit, default=DEFAULT_CATALOG_LIMIT)
        safe_offset = clamp_offset(offset)
        try:
            products = self._products.list_page(limit=safe_limit, offset=safe_offset)
        except Exception as exc:
            logger.error("Error fetching products: %s", exc)
            raise ProductFetchError(str(exc), code=PRODUCTS_ERROR_CODE) from exc
        logger.info("Fetched %d products", len(products))
        return products

    def product_statistics(self) -> ProductStatistics:
        try:
            return self._products.statistics()
        except Exception as exc:
            logger.error("Error fetching product statistics: %s", exc)
            raise ProductFetchError(str(exc), code=PRODUCT_STATS_ERROR_CODE) from exc
