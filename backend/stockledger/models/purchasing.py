from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class PurchaseOrder(db.Model):
    """
    Purchase order header.

    LIFECYCLE:
    1. PENDING: Created
    2. SENT: Sent to the supplier (administrative)
    3. PARTIALLY_RECEIVED: Some goods arrived, not all lines complete
    4. RECEIVED: Every line complete (terminal)
    5. CANCELLED: Stopped before completion (terminal); received goods stay

    Receiving goods is the only way stock enters through an order, one
    STOCK_IN movement per positive receipt.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_supplier_status", "supplier_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # REQUIRED: Every order is placed with one supplier
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    status = db.Column(db.String(24), nullable=False, default="PENDING", index=True)

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.String(1000), nullable=True)

    ordered_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    expected_delivery_date = db.Column(db.Date, nullable=True)

    # Lifecycle timestamps
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    lines = db.relationship(
        "PurchaseOrderLine",
        order_by="PurchaseOrderLine.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def reference(self) -> str:
        return f"PO-{self.id}"

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} supplier_id={self.supplier_id} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "status": self.status,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "ordered_at": to_utc_z(self.ordered_at),
            "expected_delivery_date": (
                self.expected_delivery_date.isoformat() if self.expected_delivery_date else None
            ),
            "sent_at": to_utc_z(self.sent_at),
            "received_at": to_utc_z(self.received_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "lines": [line.to_dict() for line in self.lines],
        }


class PurchaseOrderLine(db.Model):
    """
    Individual line items on a purchase order.

    quantity_received only grows, one receipt at a time, and never passes
    quantity_ordered.
    """
    __tablename__ = "purchase_order_lines"
    __table_args__ = (
        db.UniqueConstraint("purchase_order_id", "item_code", name="uq_po_lines_order_item"),
        db.UniqueConstraint("purchase_order_id", "line_number", name="uq_po_lines_order_line_number"),
        db.CheckConstraint("quantity_ordered >= 1", name="ck_po_lines_ordered_positive"),
        db.CheckConstraint(
            "quantity_received >= 0 AND quantity_received <= quantity_ordered",
            name="ck_po_lines_received_within_ordered",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    item_code = db.Column(db.String(50), db.ForeignKey("items.code"), nullable=False, index=True)

    quantity_ordered = db.Column(db.Integer, nullable=False)
    quantity_received = db.Column(db.Integer, nullable=False, default=0)

    unit_cost_cents = db.Column(db.Integer, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    item = db.relationship("Item")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def quantity_outstanding(self) -> int:
        return self.quantity_ordered - self.quantity_received

    @property
    def is_complete(self) -> bool:
        return self.quantity_received >= self.quantity_ordered

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "item_code": self.item_code,
            "item_name": self.item.name if self.item else None,
            "quantity_ordered": self.quantity_ordered,
            "quantity_received": self.quantity_received,
            "quantity_outstanding": self.quantity_outstanding,
            "unit_cost_cents": self.unit_cost_cents,
            "line_cost_cents": self.unit_cost_cents * self.quantity_ordered,
            "quantity_on_hand": self.item.quantity_on_hand if self.item else None,
            "reorder_threshold": self.item.reorder_threshold if self.item else None,
        }
