from .base import (
    CUSTOMERS,
    ENTITY_KINDS,
    INVOICE_ITEMS,
    INVOICES,
    SETTINGS,
    USERS,
    BatchWriteError,
    RecordStore,
    StoreError,
)
from .local import LocalRecordStore
from .sql import SqlRecordStore

__all__ = [
    'CUSTOMERS', 'ENTITY_KINDS', 'INVOICE_ITEMS', 'INVOICES', 'SETTINGS', 'USERS',
    'BatchWriteError', 'RecordStore', 'StoreError',
    'LocalRecordStore', 'SqlRecordStore',
]
