from .order import Order
from .invoice import Invoice
from .order_event import OrderEvent
from .product import Product

__all__ = [
    'Order',
    'Invoice',
    'OrderEvent',
    'Product',
]
