from .auth import User, SessionToken
from .catalog import Product, Motorcycle
from .customers import Customer, CustomerBalance
from .drafts import Draft, DraftItem
from .sales import Sale, SaleItem, Invoice, InvoiceItem
from .inventory import StockMovement
from .activity import Activity
from .audit import AuditEvent

__all__ = [
    'User', 'SessionToken',
    'Product', 'Motorcycle',
    'Customer', 'CustomerBalance',
    'Draft', 'DraftItem',
    'Sale', 'SaleItem', 'Invoice', 'InvoiceItem',
    'StockMovement',
    'Activity',
    'AuditEvent',
]
