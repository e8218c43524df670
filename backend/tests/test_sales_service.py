# Overview: Pytest coverage for all-or-nothing sales and cancellation.

from datetime import date, timedelta

import pytest

from stockledger.errors import (
    BadRequestError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidStateError,
    NotFoundError,
)
from stockledger.models import Item, Sale, StockMovement
from stockledger.services import inventory_service, item_service, sales_service
from stockledger.services.inventory_service import RETURN_CREDIT, STOCK_OUT
from stockledger.time_utils import utcnow


class TestCreateSale:
    def test_completed_sale(self, db_session, item):
        sale = sales_service.create_sale([{"item_code": item.code, "quantity": 4}], notes="walk-in")

        assert sale.status == sales_service.STATUS_COMPLETED
        assert sale.total_cents == 4000
        assert len(sale.lines) == 1
        line = sale.lines[0]
        assert line.unit_price_cents == 1000
        assert line.line_total_cents == 4000
        assert line.line_number == 1

        stocked = db_session.get(Item, item.code)
        assert stocked.quantity_on_hand == 6
        assert stocked.last_sold_at is not None

        movements = inventory_service.list_movements_for_reference(f"SALE-{sale.id}")
        assert len(movements) == 1
        assert movements[0].kind == STOCK_OUT
        assert movements[0].quantity == 4
        assert movements[0].reason == f"Sale #{sale.id}"

    def test_insufficient_line_fails_whole_sale(self, db_session, item, make_item):
        """X has 10, Y has 5: asking 3 of X and 1000 of Y changes nothing."""
        other = make_item(name="Item Y", price_cents=500, quantity=5)

        with pytest.raises(InsufficientStockError) as exc_info:
            sales_service.create_sale([
                {"item_code": item.code, "quantity": 3},
                {"item_code": other.code, "quantity": 1000},
            ])

        assert exc_info.value.item_code == other.code
        assert exc_info.value.current == 5
        assert exc_info.value.requested == 1000
        assert db_session.get(Item, item.code).quantity_on_hand == 10
        assert db_session.get(Item, other.code).quantity_on_hand == 5
        assert db_session.query(Sale).count() == 0
        assert inventory_service.list_movements_by_kind(STOCK_OUT) == []

    def test_repeated_item_is_checked_in_aggregate(self, db_session, item):
        with pytest.raises(InsufficientStockError) as exc_info:
            sales_service.create_sale([
                {"item_code": item.code, "quantity": 6},
                {"item_code": item.code, "quantity": 6},
            ])
        assert exc_info.value.requested == 12
        assert db_session.get(Item, item.code).quantity_on_hand == 10

    def test_repeated_item_within_stock(self, db_session, item):
        sale = sales_service.create_sale([
            {"item_code": item.code, "quantity": 6},
            {"item_code": item.code, "quantity": 4},
        ])
        assert [line.line_number for line in sale.lines] == [1, 2]
        assert db_session.get(Item, item.code).quantity_on_hand == 0

    def test_first_failing_item_in_request_order(self, db_session, make_item):
        a = make_item(name="A", quantity=1)
        b = make_item(name="B", quantity=1)

        with pytest.raises(InsufficientStockError) as exc_info:
            sales_service.create_sale([
                {"item_code": b.code, "quantity": 2},
                {"item_code": a.code, "quantity": 2},
            ])
        assert exc_info.value.item_code == b.code

    def test_line_quantities_match_movements(self, db_session, item, make_item):
        other = make_item(name="Item Y", price_cents=250, quantity=5)
        sale = sales_service.create_sale([
            {"item_code": item.code, "quantity": 2},
            {"item_code": other.code, "quantity": 3},
        ])

        assert sale.total_cents == 2 * 1000 + 3 * 250
        assert sale.total_cents == sum(line.line_total_cents for line in sale.lines)
        movements = inventory_service.list_movements_for_reference(sale.reference)
        assert sorted((m.item_code, m.quantity) for m in movements) == sorted(
            (line.item_code, line.quantity) for line in sale.lines
        )

    def test_price_captured_at_sale_time(self, db_session, item):
        sale = sales_service.create_sale([{"item_code": item.code, "quantity": 1}])
        item_service.update_item(item.code, {"price_cents": 9999})

        assert sales_service.get_sale(sale.id).lines[0].unit_price_cents == 1000

    def test_empty_sale(self, db_session):
        with pytest.raises(BadRequestError):
            sales_service.create_sale([])

    @pytest.mark.parametrize("quantity", [0, -2, 1.0, None])
    def test_bad_quantity(self, db_session, item, quantity):
        with pytest.raises(InvalidQuantityError):
            sales_service.create_sale([{"item_code": item.code, "quantity": quantity}])

    @pytest.mark.parametrize("bad_line", ["bogus", None, {"item_code": 123, "quantity": 1}, {"quantity": 1}])
    def test_malformed_line(self, db_session, item, bad_line):
        with pytest.raises(BadRequestError):
            sales_service.create_sale([{"item_code": item.code, "quantity": 1}, bad_line])
        assert db_session.get(Item, item.code).quantity_on_hand == 10
        assert db_session.query(Sale).count() == 0

    def test_unknown_item(self, db_session, item):
        with pytest.raises(NotFoundError):
            sales_service.create_sale([
                {"item_code": item.code, "quantity": 1},
                {"item_code": "does-not-exist", "quantity": 1},
            ])
        assert db_session.get(Item, item.code).quantity_on_hand == 10

    def test_inactive_item(self, db_session, item):
        item_service.deactivate_item(item.code)
        with pytest.raises(BadRequestError):
            sales_service.create_sale([{"item_code": item.code, "quantity": 1}])


class TestCancelSale:
    def test_cancel_restores_stock_once(self, db_session, item):
        sale = sales_service.create_sale([{"item_code": item.code, "quantity": 4}])
        assert sale.total_cents == 4000
        assert db_session.get(Item, item.code).quantity_on_hand == 6

        cancelled = sales_service.cancel_sale(sale.id)

        assert cancelled.status == sales_service.STATUS_CANCELLED
        assert cancelled.cancelled_at is not None
        assert db_session.get(Item, item.code).quantity_on_hand == 10

        credits = inventory_service.list_movements_by_kind(RETURN_CREDIT)
        assert len(credits) == 1
        assert credits[0].reference == f"SALE-{sale.id}"
        assert credits[0].quantity == 4

        with pytest.raises(InvalidStateError) as exc_info:
            sales_service.cancel_sale(sale.id)
        assert exc_info.value.status == sales_service.STATUS_CANCELLED
        assert db_session.get(Item, item.code).quantity_on_hand == 10

    def test_cancel_unknown_sale(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.cancel_sale(424242)

    def test_cancel_works_for_deactivated_item(self, db_session, item):
        sale = sales_service.create_sale([{"item_code": item.code, "quantity": 2}])
        item_service.deactivate_item(item.code)

        sales_service.cancel_sale(sale.id)
        assert db_session.get(Item, item.code).quantity_on_hand == 10

    def test_cancel_multi_line(self, db_session, item, make_item):
        other = make_item(name="Item Y", quantity=3)
        sale = sales_service.create_sale([
            {"item_code": item.code, "quantity": 1},
            {"item_code": other.code, "quantity": 3},
        ])
        sales_service.cancel_sale(sale.id)

        assert db_session.get(Item, item.code).quantity_on_hand == 10
        assert db_session.get(Item, other.code).quantity_on_hand == 3
        assert db_session.query(StockMovement).filter_by(reference=sale.reference).count() == 4


class TestSaleQueries:
    def test_totals_count_completed_only(self, db_session, item):
        kept = sales_service.create_sale([{"item_code": item.code, "quantity": 2}])
        dropped = sales_service.create_sale([{"item_code": item.code, "quantity": 1}])
        sales_service.cancel_sale(dropped.id)

        start = utcnow() - timedelta(hours=1)
        end = utcnow() + timedelta(hours=1)

        assert sales_service.get_sales_total_between(start, end) == kept.total_cents
        assert sales_service.count_sales_between(start, end) == 1
        assert len(sales_service.list_sales_between(start, end)) == 2
        assert [s.id for s in sales_service.list_sales(status=sales_service.STATUS_CANCELLED)] == [dropped.id]

    def test_totals_empty_range(self, db_session):
        start = utcnow() - timedelta(days=2)
        assert sales_service.get_sales_total_between(start, start + timedelta(hours=1)) == 0
        assert sales_service.count_sales_between(start, start + timedelta(hours=1)) == 0

    def test_sales_for_item(self, db_session, item, make_item):
        other = make_item(name="Item Y", quantity=3)
        with_item = sales_service.create_sale([{"item_code": item.code, "quantity": 1}])
        sales_service.create_sale([{"item_code": other.code, "quantity": 1}])

        assert [s.id for s in sales_service.list_sales_for_item(item.code)] == [with_item.id]
        with pytest.raises(NotFoundError):
            sales_service.list_sales_for_item("missing")

    def test_daily_summary(self, db_session, item):
        sales_service.create_sale([{"item_code": item.code, "quantity": 3}])
        cancelled = sales_service.create_sale([{"item_code": item.code, "quantity": 1}])
        sales_service.cancel_sale(cancelled.id)

        summary = sales_service.get_sales_summary_for_day(utcnow().date())
        assert summary["sale_count"] == 1
        assert summary["total_cents"] == 3000
        assert summary["units_sold"] == 3
        assert summary["cancelled_count"] == 1

        assert sales_service.get_sales_summary_for_day(date(2000, 1, 1))["sale_count"] == 0

    def test_get_sale_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.get_sale(999)
