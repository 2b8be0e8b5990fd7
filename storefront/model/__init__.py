# ------ storefront/model/__init__.py ------

from .user import User
from .category import Category
from .product import Product
from .cart import CartItem
from .coupon import Coupon
from .shipping import ShippingRate
from .order import Order, OrderItem, OrderStatusHistory

__all__ = [
    "User",
    "Category",
    "Product",
    "CartItem",
    "Coupon",
    "ShippingRate",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
]
