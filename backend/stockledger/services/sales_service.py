# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sales Service - all-or-nothing sale processing

WHY: A sale either takes every requested unit out of stock or nothing at
all. A half-recorded sale would leave the books and the shelf disagreeing.

FLOW (create_sale):
1. Validate request shape and quantities (no DB access)
2. Lock every item involved, in sorted code order
3. Check existence, activity and aggregated availability per item
4. Write header, lines and one STOCK_OUT movement per line
5. Commit; any failure before this point leaves no trace

Cancellation credits each line back with a RETURN_CREDIT movement. It is
not checked against any stock ceiling and works for deactivated items.
"""

from __future__ import annotations

from datetime import date, datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import BadRequestError, InsufficientStockError, InvalidStateError, NotFoundError
from ..models import Sale, SaleLine
from ..time_utils import day_bounds, utcnow
from .concurrency import lock_for_update, lock_items, run_in_transaction
from .inventory_service import (
    RETURN_CREDIT,
    STOCK_OUT,
    _apply_movement_locked,
    get_item_or_404,
    validate_quantity,
)

STATUS_PENDING = "PENDING"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"

SALE_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED)


def _normalize_lines(lines) -> list[tuple[str, int]]:
    if not lines:
        raise BadRequestError("Cannot create a sale with no lines")

    normalized = []
    for index, line in enumerate(lines, start=1):
        if not hasattr(line, "get"):
            raise BadRequestError(f"Line {index} is not a mapping", details={"line": index})
        item_code = line.get("item_code")
        if not item_code or not isinstance(item_code, str):
            raise BadRequestError(f"Line {index} has no valid item_code", details={"line": index})
        quantity = validate_quantity(line.get("quantity"))
        normalized.append((item_code, quantity))
    return normalized


def _aggregate(lines: list[tuple[str, int]]) -> dict[str, int]:
    """Total requested quantity per item, keeping first-seen order."""
    totals: dict[str, int] = {}
    for item_code, quantity in lines:
        totals[item_code] = totals.get(item_code, 0) + quantity
    return totals


def create_sale(lines, notes: str | None = None) -> Sale:
    """
    Record a completed sale.

    Args:
        lines: sequence of {"item_code": str, "quantity": int}; the same item
            may appear on several lines

    Raises:
        BadRequestError: no lines, a line without item, or an inactive item
        InvalidQuantityError: a quantity that is not a positive integer
        NotFoundError: unknown item
        InsufficientStockError: first item (in request order) whose total
            requested quantity exceeds its quantity on hand
    """
    normalized = _normalize_lines(lines)
    requested = _aggregate(normalized)

    def _op():
        items = lock_items(requested)

        for item_code in requested:
            item = items.get(item_code)
            if item is None:
                raise NotFoundError(f"Item {item_code} not found", details={"item_code": item_code})
            if not item.is_active:
                raise BadRequestError(
                    f"Item {item_code} is inactive and cannot be sold",
                    details={"item_code": item_code},
                )

        for item_code, quantity in requested.items():
            item = items[item_code]
            if item.quantity_on_hand < quantity:
                raise InsufficientStockError(item_code, item.quantity_on_hand, quantity, item_name=item.name)

        sale = Sale(status=STATUS_PENDING, notes=notes, total_cents=0)
        db.session.add(sale)
        db.session.flush()

        now = utcnow()
        total = 0
        for line_number, (item_code, quantity) in enumerate(normalized, start=1):
            item = items[item_code]
            line_total = item.price_cents * quantity
            sale.lines.append(
                SaleLine(
                    line_number=line_number,
                    item_code=item_code,
                    quantity=quantity,
                    unit_price_cents=item.price_cents,
                    line_total_cents=line_total,
                )
            )
            _apply_movement_locked(
                item,
                kind=STOCK_OUT,
                quantity=quantity,
                reason=f"Sale #{sale.id}",
                reference=sale.reference,
                occurred_at=now,
            )
            item.last_sold_at = now
            total += line_total

        sale.total_cents = total
        sale.status = STATUS_COMPLETED
        return sale

    sale = run_in_transaction(_op)
    current_app.logger.info(
        "Sale %s completed: %d lines, total %d cents", sale.id, len(sale.lines), sale.total_cents
    )
    return sale


def cancel_sale(sale_id: int) -> Sale:
    """
    Cancel a completed sale and credit every line back to stock.

    Raises:
        NotFoundError: unknown sale
        InvalidStateError: sale already cancelled (or never completed)
    """
    def _op():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})

        if sale.status == STATUS_CANCELLED:
            raise InvalidStateError("Sale already cancelled", status=sale.status, details={"sale_id": sale_id})
        if sale.status != STATUS_COMPLETED:
            raise InvalidStateError(
                f"Cannot cancel sale with status {sale.status}",
                status=sale.status,
                details={"sale_id": sale_id},
            )

        items = lock_items(line.item_code for line in sale.lines)
        now = utcnow()
        for line in sale.lines:
            _apply_movement_locked(
                items[line.item_code],
                kind=RETURN_CREDIT,
                quantity=line.quantity,
                reason=f"Cancellation of sale #{sale.id}",
                reference=sale.reference,
                occurred_at=now,
            )

        sale.status = STATUS_CANCELLED
        sale.cancelled_at = now
        return sale

    sale = run_in_transaction(_op)
    current_app.logger.info("Sale %s cancelled", sale.id)
    return sale


# =============================================================================
# READ-ONLY QUERIES
# =============================================================================

def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale


def list_sales(limit: int = 50, status: str | None = None) -> list[Sale]:
    query = db.session.query(Sale)
    if status is not None:
        query = query.filter(Sale.status == status)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()


def list_sales_between(start: datetime, end: datetime, status: str | None = None) -> list[Sale]:
    """Sales created in [start, end], newest first."""
    query = db.session.query(Sale).filter(Sale.created_at >= start, Sale.created_at <= end)
    if status is not None:
        query = query.filter(Sale.status == status)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def list_sales_for_item(item_code: str) -> list[Sale]:
    get_item_or_404(item_code)
    return (
        db.session.query(Sale)
        .filter(Sale.id.in_(db.session.query(SaleLine.sale_id).filter(SaleLine.item_code == item_code)))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )


def _completed_between(start: datetime, end: datetime):
    return db.session.query(Sale).filter(
        Sale.status == STATUS_COMPLETED,
        Sale.created_at >= start,
        Sale.created_at <= end,
    )


def get_sales_total_between(start: datetime, end: datetime) -> int:
    """Total cents of completed sales in [start, end]."""
    total = _completed_between(start, end).with_entities(func.coalesce(func.sum(Sale.total_cents), 0)).scalar()
    return int(total or 0)


def count_sales_between(start: datetime, end: datetime) -> int:
    return _completed_between(start, end).count()


def get_sales_summary_for_day(day: date) -> dict:
    start, end = day_bounds(day)

    units = (
        db.session.query(func.coalesce(func.sum(SaleLine.quantity), 0))
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(
            Sale.status == STATUS_COMPLETED,
            Sale.created_at >= start,
            Sale.created_at <= end,
        )
        .scalar()
    )
    cancelled = (
        db.session.query(Sale)
        .filter(
            Sale.status == STATUS_CANCELLED,
            Sale.created_at >= start,
            Sale.created_at <= end,
        )
        .count()
    )

    return {
        "date": day.isoformat(),
        "sale_count": count_sales_between(start, end),
        "total_cents": get_sales_total_between(start, end),
        "units_sold": int(units or 0),
        "cancelled_count": cancelled,
    }
