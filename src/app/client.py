"""HTTP client for the dashboard API.

Implements the same source protocols as the in-process services, so the
paging controller, product grid and exporter run unchanged against a remote
server. Error bodies are turned back into the matching DashboardError.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests
from pydantic import ValidationError

from core.dtos import CustomerPage, CustomerProductsView, ProductRecord
from core.errors import (
    ERRORS_BY_CODE,
    CountError,
    DashboardError,
    NetworkError,
    PRODUCTS_ERROR_CODE,
    ProductFetchError,
    QueryExecutionError,
)
from core.filters import Filter, PageRequest
from core.services.export_service import ExportResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class DashboardApiClient:
    def __init__(self, base_url: str, *, timeout: float = DEFAULT_TIMEOUT, session: requests.Session | None = None):
        base = base_url.rstrip("/")
        self.base_api = base if base.endswith("/api") else f"{base}/api"
        self.timeout = timeout
        self.session = session or requests.Session()

    # ------------------------------ transport
    def _request(self, method: str, path: str, fallback: type[DashboardError], **kwargs) -> requests.Response:
        url = f"{self.base_api}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise NetworkError(f"{method} {url} unreachable: {exc}") from exc
        if resp.ok:
            return resp
        raise self._error_from(resp, fallback)

    @staticmethod
    def _error_from(resp: requests.Response, fallback: type[DashboardError]) -> DashboardError:
        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        code = payload.get("code") if isinstance(payload, dict) else None
        message = (payload.get("error") if isinstance(payload, dict) else None) or f"HTTP error! status: {resp.status_code}"
        cls = ERRORS_BY_CODE.get(code or "", fallback)
        return cls(message, code=code)

    def _json(self, resp: requests.Response, fallback: type[DashboardError]) -> dict[str, Any]:
        try:
            payload = resp.json()
        except ValueError as exc:
            raise fallback(f"Invalid JSON from {resp.url}") from exc
        if not isinstance(payload, dict) or payload.get("success") is False:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise fallback(message or "Failed to fetch data")
        return payload

    # ------------------------------ CustomerSource
    def fetch_rows(self, request: PageRequest) -> CustomerPage:
        resp = self._request("POST", "/clients", QueryExecutionError, json=request.as_body())
        payload = self._json(resp, QueryExecutionError)
        rows = payload.get("data") or []
        meta = payload.get("meta") or {}
        columns = payload.get("columns")
        if columns is None:
            columns = list(dict.fromkeys(k for r in rows for k in r))
        try:
            return CustomerPage(
                columns=list(columns),
                rows=rows,
                limit=int(meta.get("limit", request.limit)),
                offset=int(meta.get("offset", request.offset)),
            )
        except (ValidationError, TypeError, ValueError) as exc:
            raise QueryExecutionError(f"Malformed customer page from {resp.url}: {exc}") from exc

    def count_rows(self, filter: Filter) -> int:
        resp = self._request("POST", "/clients/count", CountError, json=filter.as_body())
        payload = self._json(resp, CountError)
        return int(payload.get("total") or 0)

    def export_csv(self, filter: Filter) -> ExportResult:
        resp = self._request("POST", "/clients/export", QueryExecutionError, json=filter.as_body())
        rows = resp.headers.get("X-Export-Rows")
        return ExportResult(
            data=resp.content,
            rows=int(rows) if rows and rows.isdigit() else max(len(resp.content.splitlines()) - 1, 0),
            truncated=resp.headers.get("X-Export-Truncated") == "true",
        )

    # ------------------------------ products
    def customer_products_view(self, customer_id: str) -> CustomerProductsView:
        path = f"/customers/{quote(str(customer_id), safe='')}/products"
        resp = self._request("GET", path, ProductFetchError)
        payload = self._json(resp, ProductFetchError)
        products = self._products(payload, resp.url)
        try:
            total = float(payload.get("total") or 0.0)
        except (TypeError, ValueError) as exc:
            raise ProductFetchError(f"Malformed total from {resp.url}") from exc
        return CustomerProductsView(
            customer_id=str(payload.get("customer_id", customer_id)),
            products=products,
            total=total,
        )

    def list_all_products(self, limit: object = 100, offset: object = 0) -> list[ProductRecord]:
        resp = self._request(
            "GET", "/products", ProductFetchError, params={"limit": limit, "offset": offset}
        )
        payload = self._json(resp, ProductFetchError)
        return self._products(payload, resp.url, code=PRODUCTS_ERROR_CODE)

    @staticmethod
    def _products(payload: dict[str, Any], url: str, *, code: str | None = None) -> list[ProductRecord]:
        try:
            return [ProductRecord.model_validate(p) for p in payload.get("products") or []]
        except (ValidationError, TypeError) as exc:
            logger.warning("Malformed products from %s: %s", url, exc)
            raise ProductFetchError(f"Malformed products from {url}", code=code) from exc

    # ------------------------------ misc
    def segments(self) -> list[str]:
        resp = self._request("GET", "/segments", DashboardError)
        return list(self._json(resp, DashboardError).get("segments") or [])

    def health(self) -> dict[str, Any]:
        try:
            resp = self.session.get(f"{self.base_api}/health", timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise NetworkError(str(exc)) from exc
        return resp.json()
