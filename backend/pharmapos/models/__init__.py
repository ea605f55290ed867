from .auth import User
from .catalog import Product, Discount
from .inventory import StockBatch
from .sales import Order, OrderLine

__all__ = [
    'User',
    'Product', 'Discount',
    'StockBatch',
    'Order', 'OrderLine',
]
