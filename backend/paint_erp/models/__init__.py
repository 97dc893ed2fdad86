from .catalog import CONTAINER_SIZES, Brand, ProductType, Product, ProductSizeStock
from .billing import INVOICE_STATUSES, Invoice, InvoiceItem
from .auth import USER_ROLES, User, SessionToken

__all__ = [
    'CONTAINER_SIZES', 'Brand', 'ProductType', 'Product', 'ProductSizeStock',
    'INVOICE_STATUSES', 'Invoice', 'InvoiceItem',
    'USER_ROLES', 'User', 'SessionToken',
]
