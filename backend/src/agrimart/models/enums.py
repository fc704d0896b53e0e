"""Status enumerations shared by models, schemas and services."""

from enum import Enum


class UserRole(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


class PaymentMethod(str, Enum):
    COD = "cod"
    ONLINE = "online"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ShipmentState(str, Enum):
    """Fulfilment sub-record state. ``none`` means no shipment row exists."""

    NONE = "none"
    PENDING = "pending"
    CREATED = "created"
    TRACKED = "tracked"
    CANCELLED = "cancelled"


class NotificationType(str, Enum):
    ORDER_PLACED = "order_placed"
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_SHIPPED = "order_shipped"
    ORDER_DELIVERED = "order_delivered"
    ORDER_CANCELLED = "order_cancelled"
    ORDER_STATUS_UPDATED = "order_status_updated"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
