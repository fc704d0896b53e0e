"""API v1 routers."""

from agrimart.api.v1 import (
    addresses,
    analytics,
    auth,
    cart,
    news,
    notifications,
    orders,
    payments,
    products,
    schemes,
    shipments,
)

__all__ = [
    "addresses",
    "analytics",
    "auth",
    "cart",
    "news",
    "notifications",
    "orders",
    "payments",
    "products",
    "schemes",
    "shipments",
]
