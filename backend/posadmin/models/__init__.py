from .auth import User, SessionToken
from .catalog import Category, Product
from .inventory import Warehouse, InventoryRecord, StockTransfer, StockTransferItem, DEFAULT_REORDER_POINT
from .sales import Transaction, TransactionItem, TRANSACTION_STATUSES, PAYMENT_METHODS
from .documents import DocumentSequence, SystemSetting

__all__ = [
    'User', 'SessionToken',
    'Category', 'Product',
    'Warehouse', 'InventoryRecord', 'StockTransfer', 'StockTransferItem', 'DEFAULT_REORDER_POINT',
    'Transaction', 'TransactionItem', 'TRANSACTION_STATUSES', 'PAYMENT_METHODS',
    'DocumentSequence', 'SystemSetting',
]
