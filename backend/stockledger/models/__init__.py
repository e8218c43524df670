from .inventory import Supplier, Item, StockMovement
from .sales import Sale, SaleLine
from .purchasing import PurchaseOrder, PurchaseOrderLine

__all__ = [
    'Supplier', 'Item', 'StockMovement',
    'Sale', 'SaleLine',
    'PurchaseOrder', 'PurchaseOrderLine',
]
