# Overview: Pytest coverage for the write transaction wrapper and its retry policy.

import logging

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from stockledger.errors import InsufficientStockError, NotFoundError
from stockledger.models import Item
from stockledger.services import inventory_service
from stockledger.services.concurrency import lock_items, run_in_transaction, run_with_retry
from stockledger.services.inventory_service import STOCK_OUT


def _locked_error():
    return OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))


class TestRunWithRetry:
    def test_retries_storage_conflicts(self, db_session, caplog):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise _locked_error()
            if len(calls) == 2:
                raise StaleDataError("version mismatch")
            return "ok"

        with caplog.at_level(logging.WARNING):
            assert run_with_retry(flaky, attempts=3, backoff_base=0) == "ok"

        assert len(calls) == 3
        assert sum("Write conflict" in r.getMessage() for r in caplog.records) == 2

    def test_gives_up_after_last_attempt(self, db_session):
        calls = []

        def always_locked():
            calls.append(1)
            raise _locked_error()

        with pytest.raises(OperationalError):
            run_with_retry(always_locked, attempts=2, backoff_base=0)
        assert len(calls) == 2

    def test_business_errors_are_not_retried(self, db_session):
        calls = []

        def refuse():
            calls.append(1)
            raise NotFoundError("nope")

        with pytest.raises(NotFoundError):
            run_with_retry(refuse, attempts=3, backoff_base=0)
        assert len(calls) == 1


class TestRunInTransaction:
    def test_failure_rolls_back_every_write(self, db_session, item):
        def sell_then_fail():
            locked = lock_items([item.code])[item.code]
            inventory_service._apply_movement_locked(locked, kind=STOCK_OUT, quantity=4, reason="partial")
            inventory_service._apply_movement_locked(locked, kind=STOCK_OUT, quantity=7, reason="too much")

        with pytest.raises(InsufficientStockError):
            run_in_transaction(sell_then_fail)

        assert db_session.get(Item, item.code).quantity_on_hand == 10
        assert len(inventory_service.list_item_movements(item.code)) == 1

    def test_lock_items_skips_unknown_codes(self, db_session, item):
        locked = run_in_transaction(lambda: lock_items([item.code, "missing", item.code]))
        assert list(locked) == [item.code]
        assert lock_items([]) == {}
