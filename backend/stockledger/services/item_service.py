# Overview: Service-layer operations for items; encapsulates business logic and database work.

"""
Item Service

WHY: An item's code is its identity at the counter and in every movement,
so registration owns code generation and the uniqueness check. Any opening
balance is booked through the stock ledger as a STOCK_IN, never written
straight into quantity_on_hand.

DESIGN:
- update_item() only touches descriptive fields; quantity changes go
  through inventory_service
- Items are never physically deleted; is_active=False hides them from sales
  and replenishment while keeping their history
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..errors import BadRequestError, ConflictError, InvalidQuantityError, NotFoundError
from ..models import Item, Supplier
from .concurrency import run_in_transaction
from .identifier_service import new_internal_code, new_item_code
from .inventory_service import STOCK_IN, _apply_movement_locked, get_item_or_404

ITEM_MUTABLE_FIELDS = {"name", "description", "price_cents", "reorder_threshold", "supplier_id"}

# Random space is 10^9 codes; a handful of attempts is plenty.
MAX_CODE_ATTEMPTS = 20


def _require_non_negative_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidQuantityError(f"{field} must be a non-negative integer", details={field: value})
    return value


def _require_supplier(supplier_id: int | None) -> None:
    if supplier_id is None:
        return
    if db.session.get(Supplier, supplier_id) is None:
        raise NotFoundError(f"Supplier {supplier_id} not found", details={"supplier_id": supplier_id})


def _code_taken(code: str) -> bool:
    return db.session.query(Item.code).filter(Item.code == code).first() is not None


def _internal_code_taken(internal_code: str) -> bool:
    return db.session.query(Item.code).filter(Item.internal_code == internal_code).first() is not None


def generate_item_code() -> str:
    """Fresh checksum code not used by any existing item."""
    prefix = current_app.config.get("ITEM_CODE_PREFIX", "799")
    for _ in range(MAX_CODE_ATTEMPTS):
        code = new_item_code(prefix)
        if not _code_taken(code):
            return code
    raise ConflictError("Could not generate an unused item code", details={"prefix": prefix})


def _generate_internal_code() -> str:
    prefix = current_app.config.get("INTERNAL_CODE_PREFIX", "PRD")
    for _ in range(MAX_CODE_ATTEMPTS):
        internal_code = new_internal_code(prefix)
        if not _internal_code_taken(internal_code):
            return internal_code
    raise ConflictError("Could not generate an unused internal code", details={"prefix": prefix})


def register_item(
    *,
    name: str,
    price_cents: int,
    code: str | None = None,
    internal_code: str | None = None,
    initial_quantity: int = 0,
    reorder_threshold: int | None = None,
    supplier_id: int | None = None,
    description: str | None = None,
) -> Item:
    """
    Register a catalog item.

    Args:
        name: Display name (required)
        price_cents: Current sale price in cents
        code: External barcode; generated when omitted
        internal_code: Store-assigned secondary code; generated when omitted
        initial_quantity: Opening balance, booked as a STOCK_IN "Initial stock"
        reorder_threshold: Low-stock level (DEFAULT_REORDER_THRESHOLD when omitted)
        supplier_id: Supplier the item is bought from

    Raises:
        BadRequestError: name missing
        InvalidQuantityError: negative price, threshold or opening balance
        NotFoundError: unknown supplier
        ConflictError: code or internal code already used
    """
    if not name or not name.strip():
        raise BadRequestError("Item name is required")
    name = name.strip()

    _require_non_negative_int(price_cents, "price_cents")
    _require_non_negative_int(initial_quantity, "initial_quantity")
    if reorder_threshold is None:
        reorder_threshold = current_app.config.get("DEFAULT_REORDER_THRESHOLD", 5)
    _require_non_negative_int(reorder_threshold, "reorder_threshold")

    if code is not None:
        code = code.strip()
        if not code:
            raise BadRequestError("Item code cannot be blank")
    if internal_code is not None:
        internal_code = internal_code.strip() or None

    def _op():
        _require_supplier(supplier_id)

        item_code = code
        if item_code is None:
            item_code = generate_item_code()
        elif _code_taken(item_code):
            raise ConflictError(f"Item code '{item_code}' already exists", details={"item_code": item_code})

        secondary = internal_code
        if secondary is None:
            secondary = _generate_internal_code()
        elif _internal_code_taken(secondary):
            raise ConflictError(
                f"Internal code '{secondary}' already exists",
                details={"internal_code": secondary},
            )

        item = Item(
            code=item_code,
            internal_code=secondary,
            name=name,
            description=description,
            supplier_id=supplier_id,
            quantity_on_hand=0,
            reorder_threshold=reorder_threshold,
            price_cents=price_cents,
            is_active=True,
        )
        db.session.add(item)
        db.session.flush()

        if initial_quantity > 0:
            _apply_movement_locked(item, kind=STOCK_IN, quantity=initial_quantity, reason="Initial stock")

        return item

    item = run_in_transaction(_op)
    current_app.logger.info("Item %s registered (%s)", item.code, item.name)
    return item


def get_item(item_code: str) -> Item:
    return get_item_or_404(item_code)


def get_item_by_internal_code(internal_code: str) -> Item:
    item = db.session.query(Item).filter(Item.internal_code == internal_code).first()
    if item is None:
        raise NotFoundError(
            f"Item with internal code {internal_code} not found",
            details={"internal_code": internal_code},
        )
    return item


def update_item(item_code: str, patch: dict) -> Item:
    """
    Apply descriptive changes. Unknown keys (including quantity_on_hand) are ignored.
    """
    if "name" in patch and (not patch["name"] or not str(patch["name"]).strip()):
        raise BadRequestError("Item name cannot be empty")
    for field in ("price_cents", "reorder_threshold"):
        if field in patch:
            _require_non_negative_int(patch[field], field)

    def _op():
        item = get_item_or_404(item_code)
        if "supplier_id" in patch:
            _require_supplier(patch["supplier_id"])
        for key, value in patch.items():
            if key not in ITEM_MUTABLE_FIELDS:
                continue
            if key == "name":
                value = value.strip()
            setattr(item, key, value)
        return item

    return run_in_transaction(_op)


def _set_active(item_code: str, active: bool) -> Item:
    def _op():
        item = get_item_or_404(item_code)
        item.is_active = active
        return item

    item = run_in_transaction(_op)
    current_app.logger.info("Item %s %s", item_code, "reactivated" if active else "deactivated")
    return item


def deactivate_item(item_code: str) -> Item:
    return _set_active(item_code, False)


def reactivate_item(item_code: str) -> Item:
    return _set_active(item_code, True)


def search_items(text: str, *, include_inactive: bool = False, limit: int = 50) -> list[Item]:
    """Case-insensitive match on name, code or internal code."""
    query = db.session.query(Item)
    if not include_inactive:
        query = query.filter(Item.is_active.is_(True))

    text = (text or "").strip()
    if text:
        pattern = f"%{text}%"
        query = query.filter(
            or_(
                Item.name.ilike(pattern),
                Item.code.ilike(pattern),
                Item.internal_code.ilike(pattern),
            )
        )

    return query.order_by(Item.name.asc(), Item.code.asc()).limit(limit).all()


def list_items_for_supplier(supplier_id: int, *, include_inactive: bool = False) -> list[Item]:
    query = db.session.query(Item).filter(Item.supplier_id == supplier_id)
    if not include_inactive:
        query = query.filter(Item.is_active.is_(True))
    return query.order_by(Item.name.asc()).all()
