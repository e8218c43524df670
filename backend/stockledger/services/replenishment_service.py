# Overview: Service-layer operations for replenishment; builds draft purchase orders from low stock.

"""
Replenishment Service

Proposes a purchase order for one supplier from its low-stock items.

RULES:
- Candidates: active items of the supplier with quantity_on_hand <= reorder_threshold
- Proposed quantity: 2 * reorder_threshold - quantity_on_hand (target is twice
  the threshold); candidates whose proposal is not positive are dropped
- Proposed unit cost: price_cents * SUGGESTED_COST_RATIO, half-up to a cent

Pure read: nothing is written. The returned "lines" can be passed straight
to purchase_order_service.create_order().
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from flask import current_app

from ..extensions import db
from ..errors import NoSuggestionError, NotFoundError
from ..models import Item, Supplier


def suggested_unit_cost(price_cents: int, ratio: Decimal | None = None) -> int:
    if ratio is None:
        ratio = Decimal(str(current_app.config.get("SUGGESTED_COST_RATIO", "0.70")))
    return int((Decimal(price_cents) * ratio).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def suggest_order(supplier_id: int) -> dict:
    """
    Draft purchase order for `supplier_id`.

    Raises:
        NotFoundError: unknown supplier
        NoSuggestionError: no item of this supplier needs restocking
    """
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found", details={"supplier_id": supplier_id})

    candidates = (
        db.session.query(Item)
        .filter(
            Item.supplier_id == supplier_id,
            Item.is_active.is_(True),
            Item.quantity_on_hand <= Item.reorder_threshold,
        )
        .order_by(Item.name.asc(), Item.code.asc())
        .all()
    )

    lines = []
    for item in candidates:
        quantity = 2 * item.reorder_threshold - item.quantity_on_hand
        if quantity <= 0:
            continue
        unit_cost = suggested_unit_cost(item.price_cents)
        lines.append({
            "item_code": item.code,
            "item_name": item.name,
            "quantity": quantity,
            "unit_cost_cents": unit_cost,
            "line_cost_cents": unit_cost * quantity,
            "quantity_on_hand": item.quantity_on_hand,
            "reorder_threshold": item.reorder_threshold,
        })

    if not lines:
        raise NoSuggestionError(
            f"No items of supplier {supplier.name} need restocking",
            details={"supplier_id": supplier_id},
        )

    return {
        "supplier_id": supplier.id,
        "supplier_name": supplier.name,
        "lines": lines,
        "total_cents": sum(line["line_cost_cents"] for line in lines),
    }
