# Overview: Pytest coverage for the error taxonomy and model serialization.

from datetime import date, datetime

import pytest

from stockledger.errors import (
    BadRequestError,
    ConflictError,
    ImmutableRecordError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidStateError,
    InventoryError,
    NoSuggestionError,
    NotFoundError,
    http_status_for,
)
from stockledger.services import inventory_service, purchase_order_service, sales_service
from stockledger.time_utils import day_bounds, to_utc_z


class TestErrors:
    @pytest.mark.parametrize("exc, status", [
        (NotFoundError("x"), 404),
        (InvalidQuantityError("x"), 400),
        (InsufficientStockError("799", 1, 2), 409),
        (InvalidStateError("x", status="CANCELLED"), 409),
        (BadRequestError("x"), 400),
        (NoSuggestionError("x"), 404),
        (ConflictError("x"), 409),
        (ImmutableRecordError("x"), 409),
        (InventoryError("x"), 400),
    ])
    def test_http_status(self, exc, status):
        assert http_status_for(exc) == status

    def test_insufficient_stock_details(self):
        exc = InsufficientStockError("7991234567890", 6, 7, item_name="Widget")
        assert "Widget" in str(exc)
        assert exc.to_dict() == {
            "error": "InsufficientStockError",
            "message": "Insufficient stock for 'Widget'. On hand: 6, requested: 7",
            "details": {"item_code": "7991234567890", "current": 6, "requested": 7},
        }

    def test_invalid_state_carries_status(self):
        exc = InvalidStateError("nope", status="RECEIVED", details={"order_id": 3})
        assert exc.status == "RECEIVED"
        assert exc.details == {"order_id": 3, "status": "RECEIVED"}


class TestTimeUtils:
    def test_to_utc_z(self):
        assert to_utc_z(None) is None
        assert to_utc_z(datetime(2026, 1, 2, 3, 4, 5, 999)) == "2026-01-02T03:04:05Z"

    def test_day_bounds(self):
        start, end = day_bounds(date(2026, 3, 1))
        assert start == datetime(2026, 3, 1, 0, 0)
        assert end.date() == date(2026, 3, 1)
        assert end > start


class TestSerialization:
    def test_item_to_dict(self, db_session, item):
        data = item.to_dict()
        assert data["code"] == item.code
        assert data["quantity_on_hand"] == 10
        assert data["is_low_stock"] is False
        assert data["is_depleted"] is False

    def test_sale_to_dict(self, db_session, item):
        sale = sales_service.create_sale([{"item_code": item.code, "quantity": 2}])
        data = sale.to_dict()
        assert data["status"] == "COMPLETED"
        assert data["lines"][0]["item_name"] == "Item X"
        assert data["created_at"].endswith("Z")

    def test_order_to_dict(self, db_session, supplier, item):
        order = purchase_order_service.create_order(
            supplier.id, [{"item_code": item.code, "quantity": 3, "unit_cost_cents": 50}]
        )
        data = order.to_dict()
        assert data["supplier_name"] == "Acme Wholesale"
        assert data["lines"][0]["quantity_outstanding"] == 3
        assert data["lines"][0]["line_cost_cents"] == 150

    def test_movement_to_dict(self, db_session, item):
        movement = inventory_service.list_item_movements(item.code)[0]
        data = movement.to_dict()
        assert data["kind"] == "STOCK_IN"
        assert data["quantity_before"] == 0
        assert data["quantity_after"] == 10
        assert data["item_name"] == "Item X"
