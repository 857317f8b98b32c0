"""
RFM customer dashboard JSON API (lightweight threaded HTTP server).

Routes:
* POST "/api/clients"                       – one page of customers for {segment, customerId, limit, offset}
* POST "/api/clients/count"                 – total customers for {segment, customerId}
* POST "/api/clients/export"                – CSV of every matching customer (capped at 1000 rows)
* GET  "/api/segments"                      – distinct segments
* GET  "/api/statistics"                    – per-segment RFM averages
* GET  "/api/customers/<id>/products"       – a customer's products and total spend
* GET  "/api/products?limit&offset"         – product catalog page
* GET  "/api/products/statistics"           – catalog totals and top sellers
* GET  "/api/health"                        – database liveness

Architecture:
* Handlers parse the request, call a service from app.di.Services and serialize the result.
* Services raise core.errors.DashboardError subclasses; the handler maps each to its JSON code.
* Each query checks a connection out of the shared pool and returns it before the response is written.

Usage:
    PYTHONPATH=src python3 -m app.server
"""

from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, unquote, urlparse

from pydantic import ValidationError

from app.di import Services, build_services
from app.logging_config import setup_logging
from app.settings import Settings, get_settings
from core.dtos import ClientsCountBody, ClientsQueryBody
from core.errors import DashboardError
from core.filters import normalize_filter
from core.query_planner import plan
from core.services.export_service import export_filename
from infra.db.engine import ping

logger = logging.getLogger(__name__)

_CUSTOMER_PRODUCTS_RE = re.compile(r"^/api/customers/([^/?#]+)/products/?$")


class BadRequest(Exception):
    pass


# --------------------------------------------------------------------------- request-handler
class Handler(BaseHTTPRequestHandler):
    server: DashboardServer

    @property
    def services(self) -> Services:
        return self.server.services

    def log_message(self, format: str, *args) -> None:  # noqa: A002
        logger.info("%s - %s", self.address_string(), format % args)

    def do_OPTIONS(self):  # noqa: N802
        self.send_response(204)
        self._send_cors_headers()
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self):  # noqa: N802
        parsed = urlparse(self.path)
        path = parsed.path
        qs = parse_qs(parsed.query)
        try:
            if path == "/api/health":
                return self._serve_health()
            if path == "/api/segments":
                return self._send_json(200, {"success": True, "segments": self.services.customers.segments()})
            if path == "/api/statistics":
                stats = self.services.customers.segment_statistics()
                return self._send_json(
                    200,
                    {"success": True, "statistics": [s.model_dump(mode="json", by_alias=True) for s in stats]},
                )
            if path == "/api/products":
                return self._serve_products(qs)
            if path == "/api/products/statistics":
                stats = self.services.products.product_statistics()
                payload = stats.model_dump(mode="json")
                top = payload.pop("top_products")
                return self._send_json(200, {"success": True, "statistics": payload, "top_products": top})
            if m := _CUSTOMER_PRODUCTS_RE.match(path):
                return self._serve_customer_products(unquote(m.group(1)))
            return self._send_json(404, {"error": "Not Found"})
        except DashboardError as exc:
            return self._send_json(exc.http_status, exc.to_payload())
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unhandled error on GET %s", path)
            return self._send_json(500, {"error": str(exc)})

    def do_POST(self):  # noqa: N802
        path = urlparse(self.path).path
        try:
            if path == "/api/clients":
                return self._serve_clients()
            if path == "/api/clients/count":
                return self._serve_clients_count()
            if path == "/api/clients/export":
                return self._serve_clients_export()
            return self._send_json(404, {"error": "Not Found"})
        except BadRequest as exc:
            return self._send_json(400, {"error": str(exc), "code": "BAD_REQUEST"})
        except DashboardError as exc:
            return self._send_json(exc.http_status, exc.to_payload())
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unhandled error on POST %s", path)
            return self._send_json(500, {"error": str(exc)})

    # ------------------------------ JSON helpers
    def _send_cors_headers(self) -> None:
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")

    def _send_json(self, status: int, payload) -> None:
        data = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self._send_cors_headers()
        self.end_headers()
        self.wfile.write(data)

    def _read_json(self) -> dict:
        try:
            length = int(self.headers.get("Content-Length", "0"))
        except ValueError:
            length = 0
        # A negative length would block on read(-1) until the peer hangs up
        body = self.rfile.read(length) if length > 0 else b""
        if not body:
            return {}
        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise BadRequest(f"Invalid JSON body: {exc}") from exc
        if not isinstance(data, dict):
            raise BadRequest("JSON body must be an object")
        return data

    def _read_body(self, model):
        try:
            return model.model_validate(self._read_json())
        except ValidationError as exc:
            raise BadRequest(str(exc)) from exc

    # ------------------------------ customers
    def _serve_clients(self):
        body = self._read_body(ClientsQueryBody)
        filter = normalize_filter(body.segment, body.customer_id)
        logger.info("Search request: %s limit=%s offset=%s", filter, body.limit, body.offset)
        _, fetch = plan(filter, body.limit, body.offset)
        page = self.services.customers.fetch_page(fetch)
        return self._send_json(
            200,
            {
                "success": True,
                "data": page.rows,
                "columns": page.columns,
                "meta": {"limit": fetch.limit, "offset": fetch.offset, "rowCount": page.row_count},
            },
        )

    def _serve_clients_count(self):
        body = self._read_body(ClientsCountBody)
        filter = normalize_filter(body.segment, body.customer_id)
        logger.info("Count request: %s", filter)
        count, _ = plan(filter)
        total = self.services.customers.count_matching(count)
        return self._send_json(200, {"success": True, "total": total})

    def _serve_clients_export(self):
        body = self._read_body(ClientsCountBody)
        filter = normalize_filter(body.segment, body.customer_id)
        result = self.services.exports.export_all(filter)
        data = result.data
        self.send_response(200)
        self.send_header("Content-Type", "text/csv; charset=utf-8")
        self.send_header("X-Export-Rows", str(result.rows))
        self.send_header("X-Export-Truncated", "true" if result.truncated else "false")
        self.send_header("Content-Disposition", f'attachment; filename="{export_filename()}"')
        self.send_header("Content-Length", str(len(data)))
        self._send_cors_headers()
        self.end_headers()
        self.wfile.write(data)

    # ------------------------------ products
    def _serve_customer_products(self, customer_id: str):
        try:
            view = self.services.products.customer_products_view(customer_id)
        except DashboardError as exc:
            return self._send_json(exc.http_status, {"success": False, **exc.to_payload()})
        return self._send_json(
            200,
            {
                "success": True,
                "customer_id": view.customer_id,
                "products": [p.model_dump(mode="json") for p in view.products],
                "total": view.total,
            },
        )

    def _serve_products(self, qs: dict[str, list[str]]):
        limit = (qs.get("limit") or [None])[0]
        offset = (qs.get("offset") or [None])[0]
        products = self.services.products.list_all_products(limit, offset)
        return self._send_json(200, {"success": True, "products": [p.model_dump(mode="json") for p in products]})

    def _serve_health(self):
        try:
            ping(self.services.engine)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Health check failed: %s", exc)
            return self._send_json(500, {"status": "error", "database": "disconnected"})
        return self._send_json(
            200,
            {
                "status": "healthy",
                "database": "connected",
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )


class DashboardServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], services: Services) -> None:
        self.services = services
        super().__init__(address, Handler)


def make_server(settings: Settings | None = None, services: Services | None = None) -> DashboardServer:
    settings = settings or get_settings()
    services = services or build_services(settings)
    return DashboardServer((settings.host, settings.port), services)


# --------------------------------------------------------------------------- bootstrap
def main():
    settings = get_settings()
    setup_logging(settings.log_level)
    httpd = make_server(settings)
    try:
        ping(httpd.services.engine)
        logger.info("Database connected successfully")
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("Database connection error: %s", exc)
    host, port = httpd.server_address[:2]
    logger.info("Server running on http://%s:%s  – Ctrl+C to quit", host, port)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Stopping…")
    finally:
        httpd.server_close()
        httpd.services.engine.dispose()


if __name__ == "__main__":
    main()
