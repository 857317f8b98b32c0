"""Error taxonomy for the dashboard data layer.

Each error carries a stable ``code`` that the HTTP layer puts on the wire and
the API client maps back to the same class. Nothing here is retried: the
user re-triggers the action.
"""

from __future__ import annotations


class DashboardError(Exception):
    code = "DASHBOARD_ERROR"
    http_status = 500

    def __init__(self, message: str = "", *, code: str | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        if code:
            self.code = code

    def to_payload(self) -> dict:
        return {"error": self.message, "code": self.code}


class QueryExecutionError(DashboardError):
    code = "QUERY_EXECUTION_ERROR"


class CountError(DashboardError):
    """Count path failed; callers degrade to ``len(rows)``."""

    code = "COUNT_ERROR"


class ProductFetchError(DashboardError):
    code = "FETCH_CUSTOMER_PRODUCTS_ERROR"


class SegmentsError(DashboardError):
    code = "FETCH_SEGMENTS_ERROR"


class StatisticsError(DashboardError):
    code = "FETCH_STATISTICS_ERROR"


class NetworkError(DashboardError):
    """The HTTP layer could not be reached at all."""

    code = "NETWORK_ERROR"


class EmptyResultError(DashboardError):
    """Nothing matched. A valid outcome, raised only where a caller needs rows (exports)."""

    code = "EMPTY_RESULT"
    http_status = 404


# code -> class, used by the API client to rebuild errors from JSON bodies
ERRORS_BY_CODE: dict[str, type[DashboardError]] = {
    cls.code: cls
    for cls in (
        QueryExecutionError,
        CountError,
        ProductFetchError,
        SegmentsError,
        StatisticsError,
        NetworkError,
        EmptyResultError,
    )
}
# Catalog-level product failures share ProductFetchError with their own codes
PRODUCTS_ERROR_CODE = "FETCH_PRODUCTS_ERROR"
PRODUCT_STATS_ERROR_CODE = "FETCH_PRODUCT_STATS_ERROR"
ERRORS_BY_CODE[PRODUCTS_ERROR_CODE] = ProductFetchError
ERRORS_BY_CODE[PRODUCT_STATS_ERROR_CODE] = ProductFetchError
