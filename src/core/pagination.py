"""Client-side paging state for the customer listing.

Each view owns one ``PaginationController``; the state it publishes is an
immutable ``PaginationState`` replaced on every transition, so two open
views never share page, filter or totals.

Loads are tagged with a sequence number. A response is applied only if it
belongs to the most recently issued request; anything older is dropped.
"""

from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from core.dtos import CustomerPage
from core.errors import CountError, DashboardError, EmptyResultError
from core.filters import CUSTOMER_PAGE_SIZE, UNCONSTRAINED, Filter, PageRequest
from core.services.customer_service import CustomerSource
from core.services.export_service import ExportResult, ExportService
from core.services.product_service import CustomerProductsSource

logger = logging.getLogger(__name__)

NO_PRODUCTS_MESSAGE = "No products found for this customer."
PRODUCTS_ERROR_MESSAGE = "Error loading products."


class ViewStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    DISPLAYING = "displaying"
    EMPTY = "empty"
    ERROR = "error"


def total_pages_for(total_rows: int, page_size: int, current_page: int = 1) -> int:
    """Never 0 (an empty result is one empty page) and never below the current page."""
    return max(1, math.ceil(max(total_rows, 0) / page_size), current_page)


@dataclass(frozen=True)
class PaginationState:
    status: ViewStatus = ViewStatus.IDLE
    filter: Filter = field(default_factory=Filter)
    current_page: int = 1
    page_size: int = CUSTOMER_PAGE_SIZE
    total_rows: int = 0
    columns: tuple[str, ...] = ()
    rows: tuple[dict[str, Any], ...] = ()
    count_degraded: bool = False
    error: str | None = None
    seq: int = 0

    @property
    def total_pages(self) -> int:
        return total_pages_for(self.total_rows, self.page_size, self.current_page)

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def status_message(self) -> str:
        if self.status is ViewStatus.ERROR:
            return f"Error: {self.error}"
        if self.status is ViewStatus.EMPTY:
            return "No results"
        return f"Page {self.current_page} of {self.total_pages} ({self.total_rows} customers)"


@dataclass(frozen=True)
class PendingPage:
    seq: int
    page: int
    request: PageRequest


@dataclass(frozen=True)
class ProductsModal:
    customer_id: str
    products: tuple = ()
    total: float = 0.0
    message: str | None = None
    failed: bool = False

    @property
    def total_display(self) -> str:
        return f"${self.total:.2f}"


class PaginationController:
    def __init__(
        self,
        source: CustomerSource,
        *,
        page_size: int = CUSTOMER_PAGE_SIZE,
        exporter: ExportService | None = None,
        products: CustomerProductsSource | None = None,
    ) -> None:
        self._source = source
        self._exporter = exporter
        self._products = products
        self._counter = itertools.count(1)
        self._latest = 0
        self._state = PaginationState(page_size=page_size)

    @property
    def state(self) -> PaginationState:
        return self._state

    # ------------------------------ sequencing
    def begin(self, page_number: int) -> PendingPage:
        page_number = max(int(page_number), 1)
        seq = next(self._counter)
        self._latest = seq
        request = PageRequest.for_page(self._state.filter, page_number, self._state.page_size)
        self._state = replace(self._state, status=ViewStatus.LOADING, seq=seq, error=None)
        return PendingPage(seq=seq, page=page_number, request=request)

    def resolve(
        self,
        pending: PendingPage,
        *,
        page: CustomerPage | None = None,
        total: int | None = None,
        error: DashboardError | None = None,
    ) -> bool:
        """Apply a finished load. Returns False when the response was stale and dropped."""
        if pending.seq != self._latest:
            logger.debug("Dropping stale page response seq=%d (latest=%d)", pending.seq, self._latest)
            return False

        if error is not None or page is None:
            self._state = replace(
                self._state,
                status=ViewStatus.ERROR,
                total_rows=0,
                columns=(),
                rows=(),
                count_degraded=False,
                error=str(error) if error else "No response",
            )
            return True

        degraded = total is None
        # A missing or zero count falls back to the rows in hand
        total_rows = total or page.row_count
        status = ViewStatus.DISPLAYING if page.rows else ViewStatus.EMPTY
        self._state = replace(
            self._state,
            status=status,
            current_page=pending.page,
            total_rows=total_rows,
            columns=tuple(page.columns),
            rows=tuple(page.rows),
            count_degraded=degraded,
            error=None,
        )
        return True

    # ------------------------------ transitions
    def request_page(self, page_number: int) -> PaginationState:
        pending = self.begin(page_number)
        try:
            page = self._source.fetch_rows(pending.request)
        except DashboardError as exc:
            logger.warning("Page %d failed: %s", pending.page, exc)
            self.resolve(pending, error=exc)
            return self._state

        total: int | None
        try:
            total = self._source.count_rows(pending.request.filter)
        except CountError as exc:
            logger.warning("Count unavailable, using page size as total: %s", exc)
            total = None
        except DashboardError as exc:
            logger.warning("Page %d failed: %s", pending.page, exc)
            self.resolve(pending, error=exc)
            return self._state

        self.resolve(pending, page=page, total=total)
        return self._state

    def next_page(self) -> PaginationState:
        if not self._state.has_next:
            return self._state
        return self.request_page(self._state.current_page + 1)

    def prev_page(self) -> PaginationState:
        if not self._state.has_prev:
            return self._state
        return self.request_page(self._state.current_page - 1)

    def refresh(self) -> PaginationState:
        return self.request_page(self._state.current_page)

    def apply_filter(self, filter: Filter) -> PaginationState:
        self._state = replace(self._state, filter=filter, current_page=1)
        return self.request_page(1)

    def clear_filter(self) -> PaginationState:
        return self.apply_filter(UNCONSTRAINED)

    # ------------------------------ collaborators
    def export_csv(self) -> ExportResult:
        if self._exporter is None:
            raise RuntimeError("No exporter configured for this view")
        if self._state.total_rows == 0:
            raise EmptyResultError("No data to export")
        return self._exporter.export_all(self._state.filter)

    def open_customer_products(self, customer_id: str) -> ProductsModal:
        if self._products is None:
            raise RuntimeError("No product source configured for this view")
        try:
            view = self._products.customer_products_view(customer_id)
        except DashboardError as exc:
            logger.warning("Products for %s failed: %s", customer_id, exc)
            return ProductsModal(customer_id=str(customer_id), message=PRODUCTS_ERROR_MESSAGE, failed=True)
        if not view.products:
            return ProductsModal(customer_id=view.customer_id, total=view.total, message=NO_PRODUCTS_MESSAGE)
        return ProductsModal(customer_id=view.customer_id, products=tuple(view.products), total=view.total)
