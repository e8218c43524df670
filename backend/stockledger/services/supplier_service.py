# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

WHY: Purchase orders are always placed with exactly one supplier, and the
replenishment advisor groups low-stock items by the supplier that sells them.

DESIGN:
- Flat master data, no movements and no lifecycle beyond is_active
- Supplier codes are unique when specified, inactive suppliers included
- Suppliers are never physically deleted; deactivation keeps order history intact
"""

from flask import current_app

from ..extensions import db
from ..errors import BadRequestError, ConflictError, NotFoundError
from ..models import Supplier


def _normalize_code(code: str | None) -> str | None:
    if code:
        code = code.strip().upper()
    return code or None


def create_supplier(
    *,
    name: str,
    code: str | None = None,
    tax_id: str | None = None,
    contact_name: str | None = None,
    contact_email: str | None = None,
    contact_phone: str | None = None,
    address: str | None = None,
    notes: str | None = None,
) -> Supplier:
    """
    Create a new supplier.

    Raises:
        BadRequestError: name missing
        ConflictError: code already used
    """
    if not name or not name.strip():
        raise BadRequestError("Supplier name is required")
    name = name.strip()

    code = _normalize_code(code)
    if code:
        existing = db.session.query(Supplier).filter(Supplier.code == code).first()
        if existing:
            raise ConflictError(f"Supplier code '{code}' already exists", details={"code": code})

    supplier = Supplier(
        name=name,
        code=code,
        tax_id=tax_id,
        contact_name=contact_name,
        contact_email=contact_email,
        contact_phone=contact_phone,
        address=address,
        notes=notes,
        is_active=True,
    )

    db.session.add(supplier)
    db.session.commit()
    current_app.logger.info("Supplier %s created (%s)", supplier.id, supplier.name)
    return supplier


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found", details={"supplier_id": supplier_id})
    return supplier


def get_supplier_by_code(code: str) -> Supplier | None:
    """Active supplier by code (case-insensitive), or None."""
    code = _normalize_code(code)
    if not code:
        return None
    return db.session.query(Supplier).filter(
        Supplier.code == code,
        Supplier.is_active.is_(True),
    ).first()


def list_suppliers(*, include_inactive: bool = False) -> list[Supplier]:
    query = db.session.query(Supplier)
    if not include_inactive:
        query = query.filter(Supplier.is_active.is_(True))
    return query.order_by(Supplier.name.asc()).all()


def deactivate_supplier(supplier_id: int) -> Supplier:
    """Soft-delete. Existing orders and items keep their reference."""
    supplier = get_supplier(supplier_id)
    supplier.is_active = False
    db.session.commit()
    current_app.logger.info("Supplier %s deactivated", supplier_id)
    return supplier
