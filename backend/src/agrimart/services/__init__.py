"""Business logic services."""

from agrimart.services.analytics_service import AnalyticsService
from agrimart.services.inventory_service import InventoryService
from agrimart.services.notification_service import NotificationService
from agrimart.services.order_service import OrderService
from agrimart.services.payment_service import PaymentService
from agrimart.services.redis_service import RedisService
from agrimart.services.shipment_service import ShipmentService

__all__ = [
    "AnalyticsService",
    "InventoryService",
    "NotificationService",
    "OrderService",
    "PaymentService",
    "RedisService",
    "ShipmentService",
]
