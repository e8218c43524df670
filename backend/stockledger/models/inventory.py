from __future__ import annotations

from flask import current_app
from sqlalchemy import event

from ..errors import ImmutableRecordError
from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Supplier(db.Model):
    """
    Supplier master data.

    Flat, non-transactional record. Referenced by items (who we buy them from)
    and by purchase order headers. Never physically deleted; is_active=False
    hides it from replenishment and new orders.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_suppliers_code"),
        db.Index("ix_suppliers_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(200), nullable=False)
    code = db.Column(db.String(64), nullable=True)  # Optional short code for quick lookup
    tax_id = db.Column(db.String(20), nullable=True)

    # Contact information
    contact_name = db.Column(db.String(100), nullable=True)
    contact_email = db.Column(db.String(100), nullable=True)
    contact_phone = db.Column(db.String(20), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "tax_id": self.tax_id,
            "contact_name": self.contact_name,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "address": self.address,
            "notes": self.notes,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Item(db.Model):
    """
    Catalog item with its quantity on hand.

    IDENTITY:
    - code is the checksum-bearing primary identity (EAN-13 style when generated,
      any external barcode when supplied by the caller)
    - internal_code is an optional secondary, store-assigned code

    QUANTITY:
    - quantity_on_hand is mutated ONLY by inventory_service's movement routine,
      in the same transaction as the StockMovement that documents the change
    - the CHECK constraint is a storage-level backstop; the service rejects the
      write before it gets that far
    - version_id turns lost updates into StaleDataError (retried by concurrency.py)

    low stock / depleted are derived properties, never stored.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("internal_code", name="uq_items_internal_code"),
        db.CheckConstraint("quantity_on_hand >= 0", name="ck_items_quantity_non_negative"),
        db.CheckConstraint("reorder_threshold >= 0", name="ck_items_threshold_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_items_price_non_negative"),
        db.Index("ix_items_name", "name"),
        db.Index("ix_items_active", "is_active"),
        db.Index("ix_items_quantity", "quantity_on_hand"),
    )

    code = db.Column(db.String(50), primary_key=True)
    internal_code = db.Column(db.String(50), nullable=True)

    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(1000), nullable=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    quantity_on_hand = db.Column(db.Integer, nullable=False, default=0)
    reorder_threshold = db.Column(db.Integer, nullable=False, default=5)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_sold_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.quantity_on_hand <= self.reorder_threshold

    @property
    def is_depleted(self) -> bool:
        return self.quantity_on_hand == 0

    def __repr__(self) -> str:
        return f"<Item code={self.code!r} name={self.name!r} qty={self.quantity_on_hand}>"

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "internal_code": self.internal_code,
            "name": self.name,
            "description": self.description,
            "supplier_id": self.supplier_id,
            "quantity_on_hand": self.quantity_on_hand,
            "reorder_threshold": self.reorder_threshold,
            "price_cents": self.price_cents,
            "is_active": self.is_active,
            "is_low_stock": self.is_low_stock,
            "is_depleted": self.is_depleted,
            "last_sold_at": to_utc_z(self.last_sold_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Immutable record of one stock change.

    quantity is the magnitude actually applied; quantity_after is always
    quantity_before +/- quantity according to the kind's sign.
    requested_quantity differs from quantity only for a clamped negative
    adjustment.

    reference links the movement to its enclosing document ("SALE-12", "PO-3").

    APPEND-ONLY: before_update / before_delete listeners below refuse any
    change through the ORM.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.CheckConstraint("quantity_after >= 0", name="ck_stock_movements_after_non_negative"),
        db.Index("ix_stock_movements_item_occurred", "item_code", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_code = db.Column(db.String(50), db.ForeignKey("items.code"), nullable=False, index=True)

    # STOCK_IN, STOCK_OUT, POSITIVE_ADJUSTMENT, NEGATIVE_ADJUSTMENT, RETURN_CREDIT
    kind = db.Column(db.String(32), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    requested_quantity = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)

    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    reference = db.Column(db.String(64), nullable=True, index=True)

    # Python-side default keeps sub-second ordering
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    item = db.relationship("Item")

    def __repr__(self) -> str:
        return (
            f"<StockMovement id={self.id} item={self.item_code!r} kind={self.kind} "
            f"{self.quantity_before}->{self.quantity_after}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_code": self.item_code,
            "item_name": self.item.name if self.item else None,
            "kind": self.kind,
            "quantity": self.quantity,
            "requested_quantity": self.requested_quantity,
            "reason": self.reason,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "reference": self.reference,
            "occurred_at": to_utc_z(self.occurred_at),
        }


def _refuse_movement_update(mapper, connection, target):
    current_app.logger.error("Refused UPDATE of stock movement %s", target.id)
    raise ImmutableRecordError(
        f"Stock movement {target.id} is immutable and cannot be modified",
        details={"movement_id": target.id, "operation": "UPDATE"},
    )


def _refuse_movement_delete(mapper, connection, target):
    current_app.logger.error("Refused DELETE of stock movement %s", target.id)
    raise ImmutableRecordError(
        f"Stock movement {target.id} is immutable and cannot be deleted",
        details={"movement_id": target.id, "operation": "DELETE"},
    )


event.listen(StockMovement, "before_update", _refuse_movement_update)
event.listen(StockMovement, "before_delete", _refuse_movement_delete)
