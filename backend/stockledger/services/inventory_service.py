# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

# backend/stockledger/services/inventory_service.py

from datetime import datetime

from ..extensions import db
from ..errors import BadRequestError, InsufficientStockError, InvalidQuantityError, NotFoundError
from ..models import Item, StockMovement
from ..time_utils import utcnow
from .concurrency import lock_items, run_in_transaction
"""
Stock Ledger Invariants (authoritative)

Quantity model:
- Item.quantity_on_hand is the mutable balance; StockMovement rows explain it.
- _apply_movement_locked() is the ONLY code that changes quantity_on_hand and
  the ONLY code that creates StockMovement rows. Sales, purchase orders and
  item registration all go through it.
- The item update and the movement insert happen in the same DB transaction.

Business invariants:
- quantity_on_hand is never negative.
- Every movement satisfies quantity_after == quantity_before + sign(kind) * quantity
  with quantity > 0.
- STOCK_OUT never clamps: a sale cannot silently sell less than agreed.
- NEGATIVE_ADJUSTMENT clamps to what is on hand; the movement records the
  applied quantity, and requested_quantity keeps what was asked.

Concurrency:
- Public entry points run inside run_in_transaction() holding the item row
  lock (lock_items) from the read of the balance until commit.
- Enclosing transactions (sales, purchase orders) take the locks for every
  item they touch up front and call _apply_movement_locked() directly.
"""


STOCK_IN = "STOCK_IN"
STOCK_OUT = "STOCK_OUT"
POSITIVE_ADJUSTMENT = "POSITIVE_ADJUSTMENT"
NEGATIVE_ADJUSTMENT = "NEGATIVE_ADJUSTMENT"
RETURN_CREDIT = "RETURN_CREDIT"

MOVEMENT_SIGNS = {
    STOCK_IN: 1,
    STOCK_OUT: -1,
    POSITIVE_ADJUSTMENT: 1,
    NEGATIVE_ADJUSTMENT: -1,
    RETURN_CREDIT: 1,
}
MOVEMENT_KINDS = frozenset(MOVEMENT_SIGNS)
DECREASING_KINDS = frozenset(k for k, sign in MOVEMENT_SIGNS.items() if sign < 0)

# Decreasing kinds allowed to clamp at zero instead of failing
CLAMPING_KINDS = frozenset({NEGATIVE_ADJUSTMENT})


def validate_quantity(quantity, *, field: str = "quantity") -> int:
    """Positive int only; bools and floats are rejected."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(f"{field} must be an integer", details={field: quantity})
    if quantity <= 0:
        raise InvalidQuantityError(f"{field} must be positive", details={field: quantity})
    return quantity


def validate_kind(kind: str) -> str:
    if kind not in MOVEMENT_KINDS:
        raise BadRequestError(
            f"Invalid movement kind. Must be one of: {', '.join(sorted(MOVEMENT_KINDS))}",
            details={"kind": kind},
        )
    return kind


def get_item_or_404(item_code: str) -> Item:
    item = db.session.get(Item, item_code) if item_code else None
    if item is None:
        raise NotFoundError(f"Item {item_code} not found", details={"item_code": item_code})
    return item


def _apply_movement_locked(
    item: Item,
    *,
    kind: str,
    quantity: int,
    reason: str | None = None,
    reference: str | None = None,
    occurred_at: datetime | None = None,
) -> StockMovement:
    """Core movement logic without locking, retry, or commit.

    Caller must hold the row lock on `item` for the current transaction.
    """
    validate_kind(kind)
    validate_quantity(quantity)

    before = item.quantity_on_hand
    applied = quantity

    if kind in DECREASING_KINDS and before < quantity:
        if kind not in CLAMPING_KINDS:
            raise InsufficientStockError(item.code, before, quantity, item_name=item.name)
        if before == 0:
            raise InvalidQuantityError(
                f"Nothing on hand to remove from {item.code}",
                details={"item_code": item.code, "quantity_on_hand": before, "requested": quantity},
            )
        applied = before

    after = before + MOVEMENT_SIGNS[kind] * applied

    item.quantity_on_hand = after

    movement = StockMovement(
        item_code=item.code,
        kind=kind,
        quantity=applied,
        requested_quantity=quantity,
        reason=reason,
        quantity_before=before,
        quantity_after=after,
        reference=reference,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def apply_movement(
    item_code: str,
    kind: str,
    quantity: int,
    reason: str | None = None,
    reference: str | None = None,
) -> StockMovement:
    """
    Record one stock change for one item.

    Raises:
        InvalidQuantityError: quantity is not a positive integer, or a
            NEGATIVE_ADJUSTMENT would clamp to zero on an empty item
        BadRequestError: unknown movement kind
        NotFoundError: unknown item
        InsufficientStockError: STOCK_OUT exceeds on-hand
    """
    validate_kind(kind)
    validate_quantity(quantity)

    def _op():
        item = lock_items([item_code]).get(item_code)
        if item is None:
            raise NotFoundError(f"Item {item_code} not found", details={"item_code": item_code})
        return _apply_movement_locked(
            item,
            kind=kind,
            quantity=quantity,
            reason=reason,
            reference=reference,
        )

    return run_in_transaction(_op)


def receive_stock(item_code: str, quantity: int, reason: str | None = None) -> StockMovement:
    """Manual stock-in outside of a purchase order."""
    return apply_movement(item_code, STOCK_IN, quantity, reason or "Stock received")


def adjust_stock(
    item_code: str,
    quantity: int,
    reason: str | None = None,
    *,
    positive: bool = True,
) -> StockMovement:
    """
    Manual correction.

    Negative adjustments clamp at zero: counting 3 when the books say 1 leaves
    0 on hand and a movement of 1, not a failure.
    """
    kind = POSITIVE_ADJUSTMENT if positive else NEGATIVE_ADJUSTMENT
    return apply_movement(item_code, kind, quantity, reason or "Manual adjustment")


# =============================================================================
# READ-ONLY QUERIES
# =============================================================================

def _snapshot(item: Item) -> dict:
    return {
        "item_code": item.code,
        "name": item.name,
        "quantity_on_hand": item.quantity_on_hand,
        "reorder_threshold": item.reorder_threshold,
        "is_low_stock": item.is_low_stock,
        "is_depleted": item.is_depleted,
        "is_active": item.is_active,
    }


def get_stock_snapshot(item_code: str) -> dict:
    return _snapshot(get_item_or_404(item_code))


def list_stock_snapshot(*, include_inactive: bool = False) -> list[dict]:
    """Current balance of every item, ordered by code."""
    query = db.session.query(Item)
    if not include_inactive:
        query = query.filter(Item.is_active.is_(True))
    return [_snapshot(item) for item in query.order_by(Item.code).all()]


def _low_stock_query():
    return db.session.query(Item).filter(
        Item.is_active.is_(True),
        Item.quantity_on_hand <= Item.reorder_threshold,
    )


def _depleted_query():
    return db.session.query(Item).filter(
        Item.is_active.is_(True),
        Item.quantity_on_hand == 0,
    )


def list_low_stock_items() -> list[Item]:
    """Active items at or below their reorder threshold, emptiest first."""
    return _low_stock_query().order_by(Item.quantity_on_hand.asc(), Item.name.asc()).all()


def list_depleted_items() -> list[Item]:
    return _depleted_query().order_by(Item.name.asc()).all()


def count_low_stock_items() -> int:
    return _low_stock_query().count()


def count_depleted_items() -> int:
    return _depleted_query().count()


def _newest_first(query):
    return query.order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())


def list_item_movements(item_code: str, limit: int | None = None) -> list[StockMovement]:
    """Movement history for one item, newest first."""
    get_item_or_404(item_code)

    query = _newest_first(db.session.query(StockMovement).filter(StockMovement.item_code == item_code))
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_recent_movements(limit: int = 20) -> list[StockMovement]:
    """Most recent movements across all items."""
    if limit <= 0:
        return []
    return _newest_first(db.session.query(StockMovement)).limit(limit).all()


def list_movements_by_kind(kind: str) -> list[StockMovement]:
    validate_kind(kind)
    return _newest_first(db.session.query(StockMovement).filter(StockMovement.kind == kind)).all()


def list_movements_between(start: datetime, end: datetime) -> list[StockMovement]:
    """Movements with start <= occurred_at <= end, newest first."""
    return _newest_first(
        db.session.query(StockMovement).filter(
            StockMovement.occurred_at >= start,
            StockMovement.occurred_at <= end,
        )
    ).all()


def list_movements_for_reference(reference: str) -> list[StockMovement]:
    """Movements written for one sale / order, in the order they were recorded."""
    return (
        db.session.query(StockMovement)
        .filter(StockMovement.reference == reference)
        .order_by(StockMovement.id.asc())
        .all()
    )
