from .catalog import Product, StockAdjustment
from .transactions import Transaction, TransactionLine, Payment
from .guests import Room, Guest
from .shifts import Shift, Expense
from .ledger import LedgerEvent

__all__ = [
    'Product', 'StockAdjustment',
    'Transaction', 'TransactionLine', 'Payment',
    'Room', 'Guest',
    'Shift', 'Expense',
    'LedgerEvent',
]
