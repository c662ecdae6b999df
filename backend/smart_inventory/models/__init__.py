from .inventory import StockItem
from .sales import SaleRecord
from .auth import User

__all__ = [
    'StockItem',
    'SaleRecord',
    'User',
]
