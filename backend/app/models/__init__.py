from .base import Base
from .user import User
from .product import Product
from .shift import Shift
from .cash_transaction import CashTransaction
from .sale import Sale, SaleItem, SalePayment
from .inventory_movement import InventoryMovement
from .purchase import PurchaseInvoice, PurchaseInvoiceItem, PurchasePayment
from .folio_counter import FolioCounter
from .configuration import Configuration

__all__ = [
    "Base",
    "User",
    "Product",
    "Shift",
    "CashTransaction",
    "Sale",
    "SaleItem",
    "SalePayment",
    "InventoryMovement",
    "PurchaseInvoice",
    "PurchaseInvoiceItem",
    "PurchasePayment",
    "FolioCounter",
    "Configuration",
]
