import json
import socket

import pytest
import requests

from app.client import DashboardApiClient
from core.errors import EmptyResultError, NetworkError, ProductFetchError
from core.filters import Filter, PageRequest
from core.pagination import PaginationController, ViewStatus
from core.product_grid import ProductGrid


def _closed_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def client(live_server):
    return DashboardApiClient(live_server, timeout=5)


def test_base_url_gets_api_suffix_once():
    assert DashboardApiClient("http://h:3000").base_api == "http://h:3000/api"
    assert DashboardApiClient("http://h:3000/api/").base_api == "http://h:3000/api"


def test_fetch_and_count_over_http(client):
    page = client.fetch_rows(PageRequest(filter=Filter(segment="Champions"), limit=10, offset=10))
    assert page.row_count == 10
    assert page.rows[0]["CustomerID"] == "C0011"
    assert client.count_rows(Filter(segment="Champions")) == 23


def test_controller_runs_against_the_api(client):
    ctl = PaginationController(client, products=client)
    state = ctl.apply_filter(Filter(segment="Champions"))
    assert state.status is ViewStatus.DISPLAYING
    assert (state.total_rows, state.total_pages) == (23, 3)

    modal = ctl.open_customer_products("C0001")
    assert modal.total == 24.98
    assert modal.total_display == "$24.98"


def test_customer_products_view_over_http(client):
    view = client.customer_products_view("C0002")
    assert {p.product_name for p in view.products} == {"Mechanical Keyboard", "Desk Mat, XL"}
    assert view.total == pytest.approx(89.90 + 3 * 12.50)


def test_export_over_http(client):
    result = client.export_csv(Filter(segment="Hibernating"))
    assert len(result.data.decode("utf-8").splitlines()) == 5
    assert (result.rows, result.truncated) == (4, False)
    with pytest.raises(EmptyResultError):
        client.export_csv(Filter(customer_id="NOPE"))


def test_product_grid_over_http(client):
    grid = ProductGrid(client)
    items = grid.load()
    assert grid.error is None
    assert len(items) == 5
    assert grid.total_pages == 1


def test_segments_and_health(client):
    assert "Champions" in client.segments()
    assert client.health()["status"] == "healthy"


def test_unreachable_server_is_network_error():
    client = DashboardApiClient(f"http://127.0.0.1:{_closed_port()}", timeout=2)
    with pytest.raises(NetworkError):
        client.count_rows(Filter())
    with pytest.raises(NetworkError):
        client.health()


def test_unreachable_server_puts_view_in_error_state():
    client = DashboardApiClient(f"http://127.0.0.1:{_closed_port()}", timeout=2)
    state = PaginationController(client).request_page(1)
    assert state.status is ViewStatus.ERROR
    assert state.rows == ()


class CannedSession:
    """Answers every request with one fixed JSON body."""

    def __init__(self, payload):
        self.payload = payload

    def request(self, method, url, timeout=None, **kwargs):
        resp = requests.Response()
        resp.status_code = 200
        resp.url = url
        resp._content = json.dumps(self.payload).encode("utf-8")
        return resp


@pytest.mark.parametrize(
    "products",
    [
        [{"customer_id": "C1", "product_name": "Hub", "quantity": 1, "price": "not-a-price"}],
        ["just a string"],
        "abc",
    ],
)
def test_malformed_catalog_leaves_grid_in_error(products):
    client = DashboardApiClient("http://h", session=CannedSession({"success": True, "products": products}))
    with pytest.raises(ProductFetchError) as exc_info:
        client.list_all_products()
    assert exc_info.value.code == "FETCH_PRODUCTS_ERROR"

    grid = ProductGrid(client)
    assert grid.load() == []
    assert grid.error is not None


def test_malformed_customer_products_show_error_modal():
    payload = {"success": True, "customer_id": "C1", "products": [{"price": "x"}], "total": 1}
    client = DashboardApiClient("http://h", session=CannedSession(payload))
    modal = PaginationController(client, products=client).open_customer_products("C1")
    assert modal.failed


def test_malformed_customer_page_is_query_error():
    payload = {"success": True, "data": ["not a row"], "meta": {"limit": 10, "offset": 0}}
    client = DashboardApiClient("http://h", session=CannedSession(payload))
    state = PaginationController(client).request_page(1)
    assert state.status is ViewStatus.ERROR
