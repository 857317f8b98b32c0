from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from app.adapters import row_to_product, row_to_segment_stats, rows_to_customer_page
from app.settings import Settings, get_settings
from core.dtos import CustomerPage, ProductRecord, ProductStatistics, SegmentStatistics, TopProduct
from core.pagination import PaginationController
from core.product_grid import ProductGrid
from core.query_planner import CountQuery, FetchQuery
from core.services.customer_service import CustomerService
from core.services.export_service import ExportService
from core.services.product_service import ProductService

# Concrete repos
from infra.db.engine import create_db_engine
from infra.db.repositories.customers_repo import CustomersRepo as CustomersRepoImpl
from infra.db.repositories.products_repo import ProductsRepo as ProductsRepoImpl

# -----------------------------
# Adapters to satisfy Protocols
# -----------------------------


class _CustomersRepoAdapter:
    """Adapts CustomersRepoImpl (raw rows) to the CustomersRepo Protocol (typed pages)."""

    def __init__(self, impl: CustomersRepoImpl) -> None:
        self._impl = impl

    def fetch(self, query: FetchQuery) -> CustomerPage:
        rows = self._impl.fetch(query)
        return rows_to_customer_page(rows, limit=query.limit, offset=query.offset)

    def count(self, query: CountQuery) -> int:
        return self._impl.count(query)

    def segments(self) -> list[str]:
        return self._impl.distinct_segments()

    def segment_statistics(self) -> list[SegmentStatistics]:
        return [row_to_segment_stats(r) for r in self._impl.segment_statistics()]


class _ProductsRepoAdapter:
    """Adapts ProductsRepoImpl to the ProductsRepo Protocol; rows are typed exactly once here."""

    def __init__(self, impl: ProductsRepoImpl) -> None:
        self._impl = impl

    def for_customer(self, customer_id: str) -> list[ProductRecord]:
        return [row_to_product(r) for r in self._impl.for_customer(customer_id)]

    def list_page(self, *, limit: int, offset: int) -> list[ProductRecord]:
        return [row_to_product(r) for r in self._impl.list_page(limit=limit, offset=offset)]

    def statistics(self) -> ProductStatistics:
        totals = self._impl.totals()
        top = [TopProduct.model_validate(r) for r in self._impl.top_products()]
        return ProductStatistics.model_validate({**totals, "top_products": top})


# -----------------------------
# Factories used by route handlers
# -----------------------------


@dataclass(frozen=True)
class Services:
    settings: Settings
    engine: Engine
    customers: CustomerService
    products: ProductService
    exports: ExportService

    def customer_view(self) -> PaginationController:
        """A fresh paging controller; each open view gets its own."""
        return PaginationController(
            self.customers,
            page_size=self.settings.customer_page_size,
            exporter=self.exports,
            products=self.products,
        )

    def product_grid(self) -> ProductGrid:
        return ProductGrid(self.products, page_size=self.settings.product_page_size)


def customer_service_for_engine(engine: Engine) -> CustomerService:
    return CustomerService(customers=_CustomersRepoAdapter(CustomersRepoImpl(engine)))


def product_service_for_engine(engine: Engine) -> ProductService:
    return ProductService(products=_ProductsRepoAdapter(ProductsRepoImpl(engine)))


def build_services(settings: Settings | None = None, engine: Engine | None = None) -> Services:
    settings = settings or get_settings()
    engine = engine or create_db_engine(settings)
    customers = customer_service_for_engine(engine)
    return Services(
        settings=settings,
        engine=engine,
        customers=customers,
        products=product_service_for_engine(engine),
        exports=ExportService(customers, export_limit=settings.export_limit, bom=settings.export_bom),
    )
