# Overview: Error taxonomy shared by the stock ledger services.

"""
Every service raises one of these named kinds so that callers (CLI, a future
transport layer) can render a stable message without parsing strings.

Each error carries a ``details`` dict with whatever context the caller needs
(item code, current vs requested quantity, current status).
"""

from __future__ import annotations


class InventoryError(Exception):
    """Base class for all stock ledger errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(InventoryError):
    """Item, supplier, sale or purchase order is unknown."""


class InvalidQuantityError(InventoryError):
    """Non-positive or malformed quantity / amount."""


class InsufficientStockError(InventoryError):
    """A decrease exceeds what is on hand."""

    def __init__(self, item_code: str, current: int, requested: int, item_name: str | None = None):
        label = item_name or item_code
        super().__init__(
            f"Insufficient stock for '{label}'. On hand: {current}, requested: {requested}",
            details={
                "item_code": item_code,
                "current": current,
                "requested": requested,
            },
        )
        self.item_code = item_code
        self.current = current
        self.requested = requested


class InvalidStateError(InventoryError):
    """Operation is illegal for the current sale / order status."""

    def __init__(self, message: str, status: str | None = None, details: dict | None = None):
        details = dict(details or {})
        if status is not None:
            details.setdefault("status", status)
        super().__init__(message, details)
        self.status = status


class BadRequestError(InventoryError):
    """Structurally invalid request (empty lines, unknown line item, ...)."""


class NoSuggestionError(InventoryError):
    """Replenishment found nothing to propose."""


class ConflictError(InventoryError):
    """Business rule conflict, e.g. duplicate item code."""


class ImmutableRecordError(InventoryError):
    """Attempted update or delete of an append-only record."""


# Status a transport adapter should use for each kind.
HTTP_STATUS = {
    NotFoundError: 404,
    InvalidQuantityError: 400,
    InsufficientStockError: 409,
    InvalidStateError: 409,
    BadRequestError: 400,
    NoSuggestionError: 404,
    ConflictError: 409,
    ImmutableRecordError: 409,
}


def http_status_for(exc: InventoryError) -> int:
    for cls in type(exc).__mro__:
        if cls in HTTP_STATUS:
            return HTTP_STATUS[cls]
    return 400
