import os
import sys
import threading

import pytest

# Ensure repo root and 'src/' are on sys.path for imports like 'from core import filters'
_REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

_SRC_PATH = os.path.join(_REPO_ROOT, "src")
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from app.adapters import rows_to_customer_page  # noqa: E402
from app.di import build_services  # noqa: E402
from app.server import DashboardServer  # noqa: E402
from app.settings import Settings  # noqa: E402
from infra.db.engine import create_db_engine  # noqa: E402
from infra.db.schema import init_db, insert_customers, insert_products  # noqa: E402
from scripts.sample_data import sample_customers, sample_products  # noqa: E402

API_ENV_VAR = "API_BASE_URL"


def pytest_addoption(parser):
    parser.addoption(
        "--api-base-url",
        action="store",
        default=None,
        help="Override base URL for contract tests (e.g. http://localhost:3000/api)",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "contract: mark a test as a contract test")


@pytest.fixture(scope="session")
def api_base_url(pytestconfig):
    # Priority: CLI flag > env var > None (contract tests will skip)
    cli = pytestconfig.getoption("--api-base-url")
    if cli:
        return cli
    return os.environ.get(API_ENV_VAR)


@pytest.fixture
def skip_if_no_api(api_base_url):
    if not api_base_url:
        pytest.skip(
            f"Skipping contract tests: {API_ENV_VAR} is unset and --api-base-url not provided"
        )


# --- SQLite test DB fixtures ---


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'rfm_test.db'}",
        export_dir=tmp_path / "exports",
        db_pool_size=4,
        db_pool_timeout=5,
    )


@pytest.fixture()
def empty_engine(settings):
    """Engine on a fresh file DB with the schema but no rows."""
    engine = create_db_engine(settings)
    init_db(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def engine(empty_engine):
    """
    Seeded DB: 23 Champions (C0001-C0023), 15 Loyal Customers, 8 At Risk,
    4 Hibernating; C0001 bought 2 x 9.99 and 1 x 5.
    """
    insert_customers(empty_engine, sample_customers())
    insert_products(empty_engine, sample_products())
    return empty_engine


@pytest.fixture()
def services(settings, engine):
    return build_services(settings, engine=engine)


@pytest.fixture()
def live_server(services):
    """In-process API on an ephemeral port; yields its base URL."""
    httpd = DashboardServer(("127.0.0.1", 0), services)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    host, port = httpd.server_address[:2]
    try:
        yield f"http://{host}:{port}"
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join(timeout=5)


# --- In-memory fakes for unit tests ---


class FakeCustomerSource:
    """CustomerSource over a list of dicts; can be told to fail either call."""

    def __init__(self, rows, *, fail_fetch=None, fail_count=None):
        self.rows = list(rows)
        self.fail_fetch = fail_fetch
        self.fail_count = fail_count
        self.fetch_calls = []
        self.count_calls = []

    def _matching(self, flt):
        return [
            r
            for r in self.rows
            if (not flt.segment or r.get("Segment") == flt.segment)
            and (not flt.customer_id or r.get("CustomerID") == flt.customer_id)
        ]

    def fetch_rows(self, request):
        self.fetch_calls.append(request)
        if self.fail_fetch is not None:
            raise self.fail_fetch
        rows = self._matching(request.filter)[request.offset : request.offset + request.limit]
        return rows_to_customer_page(rows, limit=request.limit, offset=request.offset)

    def count_rows(self, flt):
        self.count_calls.append(flt)
        if self.fail_count is not None:
            raise self.fail_count
        return len(self._matching(flt))


def make_customers(n, segment="Champions", start=1):
    return [
        {"CustomerID": f"C{i:04d}", "Recency": i, "Frequency": 3, "MonetaryValue": 10.5 * i, "Segment": segment}
        for i in range(start, start + n)
    ]


@pytest.fixture
def fake_source_factory():
    return FakeCustomerSource


@pytest.fixture
def customers_factory():
    return make_customers
