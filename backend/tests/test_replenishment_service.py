# Overview: Pytest coverage for replenishment drafts.

import pytest

from stockledger.errors import NoSuggestionError, NotFoundError
from stockledger.models import PurchaseOrder
from stockledger.services import item_service, purchase_order_service, replenishment_service, supplier_service


class TestSuggestOrder:
    def test_low_stock_items_are_proposed(self, db_session, supplier, make_item):
        low = make_item(name="Low", price_cents=1000, quantity=2, threshold=5, supplier_id=supplier.id)
        make_item(name="Healthy", price_cents=1000, quantity=40, threshold=5, supplier_id=supplier.id)

        draft = replenishment_service.suggest_order(supplier.id)

        assert draft["supplier_id"] == supplier.id
        assert len(draft["lines"]) == 1
        line = draft["lines"][0]
        assert line["item_code"] == low.code
        assert line["quantity"] == 2 * 5 - 2
        assert line["unit_cost_cents"] == 700
        assert draft["total_cents"] == 8 * 700

    def test_draft_is_pure_read(self, db_session, supplier, make_item):
        make_item(name="Low", quantity=0, threshold=3, supplier_id=supplier.id)

        first = replenishment_service.suggest_order(supplier.id)
        second = replenishment_service.suggest_order(supplier.id)

        assert first == second
        assert db_session.query(PurchaseOrder).count() == 0

    def test_draft_lines_create_an_order(self, db_session, supplier, make_item):
        make_item(name="Low", quantity=1, threshold=4, supplier_id=supplier.id)
        draft = replenishment_service.suggest_order(supplier.id)

        order = purchase_order_service.create_order(supplier.id, draft["lines"])

        assert order.total_cents == draft["total_cents"]
        assert order.lines[0].quantity_ordered == 7

    def test_cost_rounds_half_up(self, app):
        with app.app_context():
            assert replenishment_service.suggested_unit_cost(5) == 4  # 3.5 -> 4
            assert replenishment_service.suggested_unit_cost(15) == 11  # 10.5 -> 11
            assert replenishment_service.suggested_unit_cost(0) == 0

    def test_zero_threshold_at_zero_stock_is_dropped(self, db_session, supplier, make_item):
        make_item(name="Never reordered", quantity=0, threshold=0, supplier_id=supplier.id)
        with pytest.raises(NoSuggestionError):
            replenishment_service.suggest_order(supplier.id)

    def test_inactive_and_foreign_items_are_ignored(self, db_session, supplier, make_item):
        other = supplier_service.create_supplier(name="Other", code="OTH")
        retired = make_item(name="Retired", quantity=0, supplier_id=supplier.id)
        item_service.deactivate_item(retired.code)
        make_item(name="Foreign", quantity=0, supplier_id=other.id)

        with pytest.raises(NoSuggestionError):
            replenishment_service.suggest_order(supplier.id)

    def test_unknown_supplier(self, db_session):
        with pytest.raises(NotFoundError):
            replenishment_service.suggest_order(12345)
