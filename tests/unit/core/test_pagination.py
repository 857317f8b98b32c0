import pytest

from core.dtos import CustomerProductsView, ProductRecord
from core.errors import CountError, EmptyResultError, NetworkError, ProductFetchError, QueryExecutionError
from core.filters import Filter
from core.pagination import (
    NO_PRODUCTS_MESSAGE,
    PRODUCTS_ERROR_MESSAGE,
    PaginationController,
    PaginationState,
    ViewStatus,
    total_pages_for,
)
from core.services.export_service import ExportService

CHAMPIONS = Filter(segment="Champions")


@pytest.fixture
def rows(customers_factory):
    # 23 Champions followed by 8 At Risk
    return customers_factory(23) + customers_factory(8, segment="At Risk", start=24)


@pytest.fixture
def source(fake_source_factory, rows):
    return fake_source_factory(rows)


@pytest.mark.parametrize(
    "total, size, current, expected",
    [(0, 10, 1, 1), (23, 10, 1, 3), (20, 10, 1, 2), (1, 12, 1, 1), (10, 10, 4, 4)],
)
def test_total_pages_for(total, size, current, expected):
    assert total_pages_for(total, size, current) == expected


def test_initial_state_is_idle_on_page_one(source):
    ctl = PaginationController(source)
    assert ctl.state.status is ViewStatus.IDLE
    assert ctl.state.current_page == 1
    assert ctl.state.total_pages == 1
    assert source.fetch_calls == []


def test_first_page_of_champions(source):
    state = PaginationController(source).apply_filter(CHAMPIONS)

    assert state.status is ViewStatus.DISPLAYING
    assert state.total_rows == 23
    assert state.total_pages == 3
    assert len(state.rows) == 10
    assert state.rows[0]["CustomerID"] == "C0001"
    assert not state.has_prev
    assert state.has_next
    assert state.status_message == "Page 1 of 3 (23 customers)"

    req = source.fetch_calls[-1]
    assert (req.limit, req.offset) == (10, 0)
    # Fetch and count saw the same filter
    assert source.count_calls[-1] == req.filter == CHAMPIONS


def test_walk_to_last_page_and_back(source):
    ctl = PaginationController(source)
    ctl.apply_filter(CHAMPIONS)
    ctl.next_page()
    state = ctl.next_page()

    assert state.current_page == 3
    assert len(state.rows) == 3
    assert state.rows[-1]["CustomerID"] == "C0023"
    assert state.has_prev and not state.has_next
    assert source.fetch_calls[-1].offset == 20

    # At the end, next is a no-op: no new request
    calls = len(source.fetch_calls)
    assert ctl.next_page() is state
    assert len(source.fetch_calls) == calls

    assert ctl.prev_page().current_page == 2


def test_prev_on_first_page_is_a_no_op(source):
    ctl = PaginationController(source)
    ctl.request_page(1)
    calls = len(source.fetch_calls)
    ctl.prev_page()
    assert len(source.fetch_calls) == calls


def test_filter_change_resets_to_page_one(source):
    ctl = PaginationController(source)
    ctl.apply_filter(CHAMPIONS)
    ctl.next_page()
    assert ctl.state.current_page == 2

    state = ctl.apply_filter(Filter(segment="At Risk"))
    assert state.current_page == 1
    assert state.total_rows == 8
    assert state.total_pages == 1
    assert source.fetch_calls[-1].offset == 0


def test_clear_filter_lists_everyone(source):
    ctl = PaginationController(source)
    ctl.apply_filter(CHAMPIONS)
    state = ctl.clear_filter()
    assert state.filter.is_unconstrained
    assert state.total_rows == 31
    assert state.total_pages == 4


def test_refresh_reissues_current_page(source):
    ctl = PaginationController(source)
    ctl.apply_filter(CHAMPIONS)
    ctl.next_page()
    calls = len(source.fetch_calls)
    state = ctl.refresh()
    assert state.current_page == 2
    assert len(source.fetch_calls) == calls + 1


def test_count_failure_degrades_to_rows_in_hand(fake_source_factory, rows):
    source = fake_source_factory(rows, fail_count=CountError("count broke"))
    state = PaginationController(source).apply_filter(CHAMPIONS)

    assert state.status is ViewStatus.DISPLAYING
    assert state.count_degraded
    assert state.total_rows == 10
    assert state.total_pages == 1


def test_network_failure_on_count_is_an_error(fake_source_factory, rows):
    source = fake_source_factory(rows, fail_count=NetworkError("unreachable"))
    state = PaginationController(source).request_page(1)
    assert state.status is ViewStatus.ERROR
    assert state.rows == ()


def test_fetch_failure_shows_error_and_no_rows(fake_source_factory, rows):
    source = fake_source_factory(rows, fail_fetch=QueryExecutionError("syntax error"))
    state = PaginationController(source).request_page(1)

    assert state.status is ViewStatus.ERROR
    assert state.rows == ()
    assert state.total_rows == 0
    assert state.status_message == "Error: syntax error"
    # No count attempted after a failed fetch
    assert source.count_calls == []


def test_nothing_matches_is_empty_not_error(source):
    state = PaginationController(source).apply_filter(Filter(customer_id="NOPE"))
    assert state.status is ViewStatus.EMPTY
    assert state.total_rows == 0
    assert state.total_pages == 1
    assert not state.has_next
    assert state.status_message == "No results"


def test_stale_response_is_dropped(source):
    ctl = PaginationController(source)
    first = ctl.begin(1)
    second = ctl.begin(2)

    page2 = source.fetch_rows(second.request)
    assert ctl.resolve(second, page=page2, total=31) is True
    applied = ctl.state

    page1 = source.fetch_rows(first.request)
    assert ctl.resolve(first, page=page1, total=31) is False
    assert ctl.state is applied
    assert ctl.state.current_page == 2


def test_missing_total_falls_back_to_row_count(source):
    ctl = PaginationController(source)
    pending = ctl.begin(1)
    page = source.fetch_rows(pending.request)
    ctl.resolve(pending, page=page, total=0)
    assert ctl.state.total_rows == 10


def test_total_pages_never_below_current_page():
    state = PaginationState(current_page=5, total_rows=12, page_size=10)
    assert state.total_pages == 5


def test_controllers_do_not_share_state(fake_source_factory, rows):
    a = PaginationController(fake_source_factory(rows))
    b = PaginationController(fake_source_factory(rows))
    a.apply_filter(CHAMPIONS)
    a.next_page()
    assert b.state.current_page == 1
    assert b.state.filter.is_unconstrained


# --- export and products modal ---


def test_export_requires_rows(source):
    ctl = PaginationController(source, exporter=ExportService(source))
    ctl.apply_filter(Filter(customer_id="NOPE"))
    with pytest.raises(EmptyResultError):
        ctl.export_csv()


def test_export_uses_current_filter(source):
    ctl = PaginationController(source, exporter=ExportService(source))
    ctl.apply_filter(Filter(segment="At Risk"))
    data = ctl.export_csv().data.decode("utf-8")
    lines = data.splitlines()
    assert lines[0] == "CustomerID,Recency,Frequency,MonetaryValue,Segment"
    assert len(lines) == 9
    assert source.fetch_calls[-1].filter == Filter(segment="At Risk")


class FakeProducts:
    def __init__(self, view=None, boom=None):
        self.view = view
        self.boom = boom

    def customer_products_view(self, customer_id):
        if self.boom:
            raise self.boom
        return self.view


def test_modal_with_products(source):
    view = CustomerProductsView(
        customer_id="C0001",
        products=[ProductRecord(customer_id="C0001", product_name="Hub", quantity=1, price=5.0)],
        total=5.0,
    )
    modal = PaginationController(source, products=FakeProducts(view)).open_customer_products("C0001")
    assert len(modal.products) == 1
    assert modal.message is None
    assert modal.total_display == "$5.00"


def test_modal_without_products(source):
    view = CustomerProductsView(customer_id="C0999")
    modal = PaginationController(source, products=FakeProducts(view)).open_customer_products("C0999")
    assert modal.products == ()
    assert modal.message == NO_PRODUCTS_MESSAGE
    assert modal.total_display == "$0.00"
    assert not modal.failed


def test_modal_on_failure(source):
    ctl = PaginationController(source, products=FakeProducts(boom=ProductFetchError("Failed to fetch products")))
    modal = ctl.open_customer_products("C0001")
    assert modal.failed
    assert modal.message == PRODUCTS_ERROR_MESSAGE
