# Overview: Pytest coverage for the operator CLI commands.

import pytest

from stockledger.models import Item, PurchaseOrder, Supplier
from stockledger.services import inventory_service


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestSystemCommands:
    def test_init_db(self, runner, db_session):
        result = runner.invoke(args=["system", "init-db"])
        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_reset_db_requires_confirmation(self, runner, db_session, item):
        result = runner.invoke(args=["system", "reset-db"], input="n\n")
        assert result.exit_code != 0
        assert db_session.get(Item, item.code) is not None


class TestSupplierCommands:
    def test_create_and_list(self, runner, db_session):
        result = runner.invoke(args=["suppliers", "create", "--name", "Acme Wholesale", "--code", "acme"])
        assert result.exit_code == 0, result.output
        assert "ACME" in result.output
        assert db_session.query(Supplier).count() == 1

        listed = runner.invoke(args=["suppliers", "list"])
        assert "Acme Wholesale" in listed.output

    def test_duplicate_code_is_a_cli_error(self, runner, db_session, supplier):
        result = runner.invoke(args=["suppliers", "create", "--name", "Other", "--code", "ACME"])
        assert result.exit_code == 1
        assert "already exists" in result.output


class TestItemCommands:
    def test_register_and_show(self, runner, db_session):
        result = runner.invoke(args=[
            "items", "register", "--name", "Widget", "--price-cents", "1250", "--quantity", "3",
        ])
        assert result.exit_code == 0, result.output

        widget = db_session.query(Item).one()
        assert widget.quantity_on_hand == 3

        shown = runner.invoke(args=["items", "show", widget.code])
        assert "12.50" in shown.output
        assert "at or below its reorder threshold" in shown.output

    def test_show_unknown_item(self, runner, db_session):
        result = runner.invoke(args=["items", "show", "missing"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_receive_and_adjust(self, runner, db_session, item):
        received = runner.invoke(args=["items", "receive", item.code, "5", "--reason", "Found"])
        assert received.exit_code == 0, received.output
        assert "10 -> 15" in received.output

        adjusted = runner.invoke(args=["items", "adjust", item.code, "20", "--decrease"])
        assert adjusted.exit_code == 0, adjusted.output
        assert "15 -> 0" in adjusted.output
        assert "WARN" in adjusted.output

    def test_decrease_on_empty_item_is_reported(self, runner, db_session, make_item):
        empty = make_item(name="Empty", quantity=0)
        result = runner.invoke(args=["items", "adjust", empty.code, "1", "--decrease"])
        assert result.exit_code == 1
        assert "Nothing on hand to remove" in result.output

    def test_listings(self, runner, db_session, make_item):
        empty = make_item(name="Empty", quantity=0)

        assert empty.code in runner.invoke(args=["items", "low-stock"]).output
        assert empty.code in runner.invoke(args=["items", "depleted"]).output

    def test_history_and_recent(self, runner, db_session, item):
        inventory_service.receive_stock(item.code, 2)

        history = runner.invoke(args=["items", "history", item.code])
        assert history.exit_code == 0
        assert "STOCK_IN" in history.output

        recent = runner.invoke(args=["movements", "recent", "--limit", "1"])
        assert recent.output.count(item.code) == 1


class TestOrderCommands:
    def test_suggest_and_create(self, runner, db_session, supplier, make_item):
        make_item(name="Low", price_cents=1000, quantity=1, threshold=5, supplier_id=supplier.id)

        result = runner.invoke(args=["orders", "suggest", str(supplier.id), "--create"])

        assert result.exit_code == 0, result.output
        assert "7.00" in result.output
        assert db_session.query(PurchaseOrder).count() == 1

    def test_nothing_to_suggest(self, runner, db_session, supplier):
        result = runner.invoke(args=["orders", "suggest", str(supplier.id)])
        assert result.exit_code == 1
        assert "need restocking" in result.output
