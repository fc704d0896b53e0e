"""SQLAlchemy ORM models."""

from agrimart.models.address import Address
from agrimart.models.base import TimestampMixin
from agrimart.models.cart import Cart, CartItem
from agrimart.models.news import News
from agrimart.models.notification import Notification
from agrimart.models.order import Order, OrderItem
from agrimart.models.product import PriceSize, Product, ProductSeller
from agrimart.models.scheme import Scheme
from agrimart.models.shipment import Shipment
from agrimart.models.user import User

__all__ = [
    "TimestampMixin",
    "User",
    "Address",
    "Product",
    "ProductSeller",
    "PriceSize",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "Shipment",
    "Notification",
    "News",
    "Scheme",
]
