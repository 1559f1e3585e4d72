from .invoices import Invoice, InvoiceItem
from .customers import Customer
from .auth import User
from .settings import Setting

__all__ = [
    'Invoice', 'InvoiceItem',
    'Customer',
    'User',
    'Setting',
]
