from __future__ import annotations

import logging
from typing import Protocol

from core.dtos import CustomerPage, SegmentStatistics
from core.errors import CountError, QueryExecutionError, SegmentsError, StatisticsError
from core.filters import Filter, PageRequest
from core.query_planner import CountQuery, FetchQuery, plan

logger = logging.getLogger(__name__)


# Keep repos abstract to avoid tight coupling
class CustomersRepo(Protocol):
    def fetch(self, query: FetchQuery) -> CustomerPage: ...
    def count(self, query: CountQuery) -> int: ...
    def segments(self) -> list[str]: ...
    def segment_statistics(self) -> list[SegmentStatistics]: ...


class CustomerSource(Protocol):
    """What a paging client needs. Implemented in-process and over HTTP."""

    def fetch_rows(self, request: PageRequest) -> CustomerPage: ...
    def count_rows(self, filter: Filter) -> int: ...


class CustomerService:
    """
    Executes planned customer queries and maps backend failures onto the
    dashboard error taxonomy. Nothing is retried.
    """

    def __init__(self, customers: CustomersRepo) -> None:
        self._customers = customers

    def fetch_page(self, query: FetchQuery) -> CustomerPage:
        try:
            page = self._customers.fetch(query)
        except Exception as exc:
            logger.error("Customer page query failed: %s", exc)
            raise QueryExecutionError(str(exc)) from exc
        logger.info("Found %d rows (limit=%d offset=%d)", page.row_count, query.limit, query.offset)
        return page

    def count_matching(self, query: CountQuery) -> int:
        try:
            total = self._customers.count(query)
        except Exception as exc:
            logger.error("Customer count query failed: %s", exc)
            raise CountError(str(exc)) from exc
        logger.info("Total count: %d", total)
        return total

    # CustomerSource
    def fetch_rows(self, request: PageRequest) -> CustomerPage:
        _, fetch = plan(request.filter, request.limit, request.offset)
        return self.fetch_page(fetch)

    def count_rows(self, filter: Filter) -> int:
        count, _ = plan(filter)
        return self.count_matching(count)

    def segments(self) -> list[str]:
        try:
            return self._customers.segments()
        except Exception as exc:
            logger.error("Error fetching segments: %s", exc)
            raise SegmentsError(str(exc)) from exc

    def segment_statistics(self) -> list[SegmentStatistics]:
        try:
            stats = self._customers.segment_statistics()
        except Exception as exc:
            logger.error("Error fetching statistics: %s", exc)
            raise StatisticsError(str(exc)) from exc
        logger.info("Statistics fetched for %d segments", len(stats))
        return stats
