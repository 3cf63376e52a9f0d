from .identity import Principal, SessionToken, RoleAssignment
from .catalog import Category, Product, StockAdjustment
from .customers import Customer
from .sales import Sale, SaleLine
from .ledger import LedgerEntry

__all__ = [
    'Principal', 'SessionToken', 'RoleAssignment',
    'Category', 'Product', 'StockAdjustment',
    'Customer',
    'Sale', 'SaleLine',
    'LedgerEntry',
]
