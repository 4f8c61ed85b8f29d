from .catalog import Product, Inventory
from .orders import Order, OrderItem
from .returns import Return, ReturnItem
from .notes import DailyNote

__all__ = [
    'Product', 'Inventory',
    'Order', 'OrderItem',
    'Return', 'ReturnItem',
    'DailyNote',
]
