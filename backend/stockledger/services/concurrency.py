# Overview: Service-layer operations for concurrency; encapsulates transaction and locking work.

from __future__ import annotations

import time
from typing import Iterable

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Item


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; run_in_transaction opens the
    transaction with BEGIN IMMEDIATE there instead, which serializes writers.
    """
    return query.with_for_update()


def lock_items(codes: Iterable[str]) -> dict[str, Item]:
    """
    Lock every item in `codes` for the rest of the current transaction.

    Rows are locked in sorted code order so two multi-line operations touching
    overlapping items cannot deadlock. Unknown codes are simply absent from
    the result; callers decide whether that is an error.
    """
    ordered = sorted(set(codes))
    if not ordered:
        return {}
    query = db.session.query(Item).filter(Item.code.in_(ordered)).order_by(Item.code)
    # populate_existing: a row loaded earlier in this session must be re-read
    # under the lock, not served from the identity map.
    items = lock_for_update(query).populate_existing().all()
    return {item.code: item for item in items}


def _begin_write() -> None:
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Every other exception rolls the session
    back and propagates unchanged.
    """
    if attempts is None:
        attempts = current_app.config.get("WRITE_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("WRITE_RETRY_BACKOFF", 0.1)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Write conflict (%s), retrying %d/%d", type(exc).__name__, attempt + 1, attempts - 1
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run `func` as one atomic unit of work and commit it.

    The whole operation (reads, checks, writes) is repeated on a storage
    conflict, so a retried attempt re-validates against fresh state.
    """
    def _op():
        _begin_write()
        result = func()
        db.session.commit()
        return result

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
