# Overview: Service-layer operations for purchase orders; encapsulates business logic and database work.

"""
Purchase Order Service

WHY: Goods bought from a supplier enter stock only through an order, and
only when they physically arrive. Orders can be received in several
deliveries, so the order tracks what is still outstanding per line.

LIFECYCLE:
1. PENDING: Created
2. SENT: Sent to the supplier (administrative, set by hand)
3. PARTIALLY_RECEIVED: Some goods arrived, at least one line outstanding
4. RECEIVED: Every line complete (terminal)
5. CANCELLED: Stopped before completion (terminal)

RULES:
- Every status change goes through ALLOWED_TRANSITIONS
- RECEIVED / PARTIALLY_RECEIVED are derived from receipts, never set by hand
- A receipt can never push quantity_received past quantity_ordered
- Cancelling keeps goods already received; their STOCK_IN movements stand
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import BadRequestError, InvalidQuantityError, InvalidStateError, NotFoundError
from ..models import Item, PurchaseOrder, PurchaseOrderLine, Supplier
from ..time_utils import utcnow
from .concurrency import lock_for_update, lock_items, run_in_transaction
from .inventory_service import STOCK_IN, _apply_movement_locked, validate_quantity

STATUS_PENDING = "PENDING"
STATUS_SENT = "SENT"
STATUS_PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
STATUS_RECEIVED = "RECEIVED"
STATUS_CANCELLED = "CANCELLED"

ORDER_STATUSES = {
    STATUS_PENDING,
    STATUS_SENT,
    STATUS_PARTIALLY_RECEIVED,
    STATUS_RECEIVED,
    STATUS_CANCELLED,
}
OPEN_STATUSES = (STATUS_PENDING, STATUS_SENT, STATUS_PARTIALLY_RECEIVED)
TERMINAL_STATUSES = frozenset({STATUS_RECEIVED, STATUS_CANCELLED})

# Goods may arrive before the order was marked SENT.
ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_SENT, STATUS_PARTIALLY_RECEIVED, STATUS_RECEIVED, STATUS_CANCELLED},
    STATUS_SENT: {STATUS_PARTIALLY_RECEIVED, STATUS_RECEIVED, STATUS_CANCELLED},
    STATUS_PARTIALLY_RECEIVED: {STATUS_PARTIALLY_RECEIVED, STATUS_RECEIVED, STATUS_CANCELLED},
    STATUS_RECEIVED: set(),
    STATUS_CANCELLED: set(),
}

# Statuses an operator may request directly
MANUAL_STATUSES = {STATUS_SENT, STATUS_CANCELLED}


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def _transition(order: PurchaseOrder, new_status: str) -> None:
    if not can_transition(order.status, new_status):
        raise InvalidStateError(
            f"Cannot change purchase order {order.id} from {order.status} to {new_status}",
            status=order.status,
            details={"order_id": order.id, "requested_status": new_status},
        )

    now = utcnow()
    order.status = new_status
    if new_status == STATUS_SENT:
        order.sent_at = now
    elif new_status == STATUS_RECEIVED:
        order.received_at = now
    elif new_status == STATUS_CANCELLED:
        order.cancelled_at = now


def _lock_order(order_id: int) -> PurchaseOrder:
    order = lock_for_update(db.session.query(PurchaseOrder).filter_by(id=order_id)).first()
    if not order:
        raise NotFoundError(f"Purchase order {order_id} not found", details={"order_id": order_id})
    return order


def _require_unit_cost(value) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQuantityError("unit_cost_cents must be an integer", details={"unit_cost_cents": value})
    if value < 0:
        raise InvalidQuantityError("unit_cost_cents cannot be negative", details={"unit_cost_cents": value})
    return value


def _parse_delivery_date(value) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise BadRequestError(
            "expected_delivery_date must be an ISO date (YYYY-MM-DD)",
            details={"expected_delivery_date": value},
        ) from exc


def create_order(
    supplier_id: int,
    lines,
    expected_delivery_date=None,
    notes: str | None = None,
) -> PurchaseOrder:
    """
    Create a PENDING purchase order.

    Args:
        supplier_id: Supplier the goods are ordered from
        lines: sequence of {"item_code", "quantity", "unit_cost_cents"};
            each item may appear at most once; missing unit cost means 0
        expected_delivery_date: date or ISO date string

    Raises:
        BadRequestError: no lines, duplicate item, inactive supplier
        InvalidQuantityError: quantity < 1 or negative unit cost
        NotFoundError: unknown supplier or item
    """
    if not lines:
        raise BadRequestError("Cannot create a purchase order with no lines")

    normalized = []
    seen = set()
    for index, line in enumerate(lines, start=1):
        if not hasattr(line, "get"):
            raise BadRequestError(f"Line {index} is not a mapping", details={"line": index})
        item_code = line.get("item_code")
        if not item_code or not isinstance(item_code, str):
            raise BadRequestError(f"Line {index} has no valid item_code", details={"line": index})
        if item_code in seen:
            raise BadRequestError(
                f"Item {item_code} appears more than once in the order",
                details={"item_code": item_code},
            )
        seen.add(item_code)
        quantity = validate_quantity(line.get("quantity"))
        unit_cost = _require_unit_cost(line.get("unit_cost_cents"))
        normalized.append((item_code, quantity, unit_cost))

    delivery_date = _parse_delivery_date(expected_delivery_date)

    def _op():
        supplier = db.session.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError(f"Supplier {supplier_id} not found", details={"supplier_id": supplier_id})
        if not supplier.is_active:
            raise BadRequestError(
                f"Supplier {supplier_id} is inactive",
                details={"supplier_id": supplier_id},
            )

        codes = [code for code, _, _ in normalized]
        found = {code for (code,) in db.session.query(Item.code).filter(Item.code.in_(codes)).all()}
        for code in codes:
            if code not in found:
                raise NotFoundError(f"Item {code} not found", details={"item_code": code})

        order = PurchaseOrder(
            supplier_id=supplier_id,
            status=STATUS_PENDING,
            expected_delivery_date=delivery_date,
            notes=notes,
            ordered_at=utcnow(),
        )
        total = 0
        for line_number, (code, quantity, unit_cost) in enumerate(normalized, start=1):
            order.lines.append(
                PurchaseOrderLine(
                    line_number=line_number,
                    item_code=code,
                    quantity_ordered=quantity,
                    quantity_received=0,
                    unit_cost_cents=unit_cost,
                )
            )
            total += unit_cost * quantity
        order.total_cents = total

        db.session.add(order)
        db.session.flush()
        return order

    order = run_in_transaction(_op)
    current_app.logger.info(
        "Purchase order %s created for supplier %s: %d lines, total %d cents",
        order.id, order.supplier_id, len(order.lines), order.total_cents,
    )
    return order


def set_status(order_id: int, new_status: str) -> PurchaseOrder:
    """
    Administrative status change (SENT or CANCELLED).

    Raises:
        BadRequestError: unknown status
        InvalidStateError: derived status requested, or transition not allowed
    """
    if new_status not in ORDER_STATUSES:
        raise BadRequestError(
            f"Invalid status. Must be one of: {', '.join(sorted(ORDER_STATUSES))}",
            details={"status": new_status},
        )
    if new_status not in MANUAL_STATUSES:
        raise InvalidStateError(
            f"{new_status} cannot be set by hand",
            details={"order_id": order_id, "requested_status": new_status},
        )
    if new_status == STATUS_CANCELLED:
        return cancel_order(order_id)

    def _op():
        order = _lock_order(order_id)
        _transition(order, new_status)
        return order

    order = run_in_transaction(_op)
    current_app.logger.info("Purchase order %s marked %s", order.id, order.status)
    return order


def _normalize_receipts(order: PurchaseOrder, receipts) -> dict[str, int]:
    """Validate receipts against the order lines; returns positive totals per item."""
    lines_by_item = {line.item_code: line for line in order.lines}
    totals: dict[str, int] = {}

    for index, receipt in enumerate(receipts, start=1):
        if not hasattr(receipt, "get"):
            raise BadRequestError(f"Receipt {index} is not a mapping", details={"receipt": index})
        item_code = receipt.get("item_code")
        if not isinstance(item_code, str) or item_code not in lines_by_item:
            raise BadRequestError(
                f"Item {item_code} is not on purchase order {order.id}",
                details={"order_id": order.id, "item_code": item_code},
            )
        quantity = receipt.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidQuantityError("quantity must be an integer", details={"quantity": quantity})
        if quantity < 0:
            raise InvalidQuantityError(
                "Received quantity cannot be negative",
                details={"item_code": item_code, "quantity": quantity},
            )
        if quantity:
            totals[item_code] = totals.get(item_code, 0) + quantity

    for item_code, quantity in totals.items():
        line = lines_by_item[item_code]
        if line.quantity_received + quantity > line.quantity_ordered:
            raise InvalidQuantityError(
                f"Receiving {quantity} of {item_code} exceeds the outstanding quantity",
                details={
                    "item_code": item_code,
                    "quantity_ordered": line.quantity_ordered,
                    "quantity_received": line.quantity_received,
                    "requested": quantity,
                },
            )

    return totals


def receive_goods(order_id: int, receipts) -> PurchaseOrder:
    """
    Record a delivery against an order.

    Args:
        receipts: sequence of {"item_code", "quantity"}; zero quantities are
            accepted and ignored

    All receipts apply in one unit of work: one STOCK_IN movement per item
    received, then the order status is derived from the lines.

    Raises:
        NotFoundError: unknown order
        InvalidStateError: order already RECEIVED or CANCELLED
        BadRequestError: no receipts, or an item that is not on the order
        InvalidQuantityError: negative quantity, or more than outstanding
    """
    if not receipts:
        raise BadRequestError("No receipts given")

    def _op():
        order = _lock_order(order_id)
        if order.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Cannot receive goods on a {order.status} purchase order",
                status=order.status,
                details={"order_id": order_id},
            )

        totals = _normalize_receipts(order, receipts)
        items = lock_items(totals)
        lines_by_item = {line.item_code: line for line in order.lines}
        now = utcnow()

        for item_code, quantity in totals.items():
            line = lines_by_item[item_code]
            line.quantity_received += quantity
            _apply_movement_locked(
                items[item_code],
                kind=STOCK_IN,
                quantity=quantity,
                reason=f"Purchase order #{order.id}",
                reference=order.reference,
                occurred_at=now,
            )

        if all(line.is_complete for line in order.lines):
            _transition(order, STATUS_RECEIVED)
        elif any(line.quantity_received > 0 for line in order.lines):
            _transition(order, STATUS_PARTIALLY_RECEIVED)

        return order

    order = run_in_transaction(_op)
    current_app.logger.info("Purchase order %s received goods, now %s", order.id, order.status)
    return order


def cancel_order(order_id: int) -> PurchaseOrder:
    """
    Cancel an open order. Goods already received stay in stock.

    Raises:
        NotFoundError: unknown order
        InvalidStateError: order RECEIVED or already CANCELLED
    """
    def _op():
        order = _lock_order(order_id)
        _transition(order, STATUS_CANCELLED)
        return order

    order = run_in_transaction(_op)
    current_app.logger.info("Purchase order %s cancelled", order.id)
    return order


# =============================================================================
# READ-ONLY QUERIES
# =============================================================================

def get_order(order_id: int) -> PurchaseOrder:
    order = db.session.get(PurchaseOrder, order_id)
    if order is None:
        raise NotFoundError(f"Purchase order {order_id} not found", details={"order_id": order_id})
    return order


def list_orders(limit: int = 50, status: str | None = None) -> list[PurchaseOrder]:
    query = db.session.query(PurchaseOrder)
    if status is not None:
        query = query.filter(PurchaseOrder.status == status)
    return query.order_by(PurchaseOrder.ordered_at.desc(), PurchaseOrder.id.desc()).limit(limit).all()


def list_open_orders() -> list[PurchaseOrder]:
    return (
        db.session.query(PurchaseOrder)
        .filter(PurchaseOrder.status.in_(OPEN_STATUSES))
        .order_by(PurchaseOrder.ordered_at.asc(), PurchaseOrder.id.asc())
        .all()
    )


def list_orders_for_supplier(supplier_id: int) -> list[PurchaseOrder]:
    if db.session.get(Supplier, supplier_id) is None:
        raise NotFoundError(f"Supplier {supplier_id} not found", details={"supplier_id": supplier_id})
    return (
        db.session.query(PurchaseOrder)
        .filter(PurchaseOrder.supplier_id == supplier_id)
        .order_by(PurchaseOrder.ordered_at.desc(), PurchaseOrder.id.desc())
        .all()
    )


def count_open_orders() -> int:
    return (
        db.session.query(func.count(PurchaseOrder.id))
        .filter(PurchaseOrder.status.in_(OPEN_STATUSES))
        .scalar()
    )
