from .catalog import Product, Variant
from .promotions import Promo
from .carts import Cart, CartItem
from .orders import Order, OrderItem, ORDER_STATUSES

__all__ = [
    'Product', 'Variant',
    'Promo',
    'Cart', 'CartItem',
    'Order', 'OrderItem', 'ORDER_STATUSES',
]
