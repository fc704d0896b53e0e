"""Pytest configuration and fixtures for testing."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from agrimart.models.enums import OrderStatus, PaymentMethod, PaymentStatus, UserRole


# Mock Redis client fixture
@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create a mock Redis client."""
    redis = AsyncMock()

    # Mock common Redis operations
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.smembers = AsyncMock(return_value=set())

    # pipeline() is synchronous and buffers commands until execute()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[True, 1, True])
    redis.pipeline = MagicMock(return_value=pipe)

    return redis


# Mock database session fixture
@pytest.fixture
def mock_db() -> AsyncMock:
    """Create a mock AsyncSession; add/expire are synchronous on the real one."""
    db = AsyncMock()
    db.add = MagicMock()
    db.expire = MagicMock()
    return db


# Mock user fixtures
@pytest.fixture
def mock_buyer() -> MagicMock:
    """Create a mock buyer."""
    user = MagicMock()
    user.user_id = uuid4()
    user.email = "buyer@example.com"
    user.name = "Test Buyer"
    user.role = UserRole.BUYER.value
    user.is_admin = False
    user.is_seller = False
    return user


@pytest.fixture
def mock_seller() -> MagicMock:
    """Create a mock seller."""
    user = MagicMock()
    user.user_id = uuid4()
    user.email = "seller@example.com"
    user.name = "Kisan Store"
    user.role = UserRole.SELLER.value
    user.is_admin = False
    user.is_seller = True
    return user


@pytest.fixture
def shipping_snapshot() -> dict:
    return {
        "name": "Test Buyer",
        "mobile": "9000000001",
        "street_address": "1 Mandi Road",
        "city": "Pune",
        "state": "Maharashtra",
        "zip_code": "411001",
    }


def make_item(seller_id=None, quantity=2, size="1kg", seller_scoped=True) -> MagicMock:
    item = MagicMock()
    item.product_id = uuid4()
    item.seller_id = seller_id or uuid4()
    item.seller_scoped = seller_scoped
    item.product_name = "Organic Wheat Seeds"
    item.size = size
    item.quantity = quantity
    item.unit_price = Decimal("120.00")
    item.discounted_price = Decimal("99.00")
    return item


@pytest.fixture
def make_order(mock_buyer, mock_seller, shipping_snapshot):
    """Factory for mock orders owned by mock_buyer with one mock_seller line."""

    def _make(
        payment_method: str = PaymentMethod.ONLINE.value,
        payment_status: str = PaymentStatus.PENDING.value,
        status: str = OrderStatus.PENDING.value,
        items: list | None = None,
        shipment=None,
    ) -> MagicMock:
        order = MagicMock()
        order.order_id = uuid4()
        order.user_id = mock_buyer.user_id
        order.items = items if items is not None else [make_item(seller_id=mock_seller.user_id)]
        order.total_amount = sum(
            (i.discounted_price * i.quantity for i in order.items), Decimal("0")
        )
        order.payment_method = payment_method
        order.payment_status = payment_status
        order.status = status
        order.shipping_address = dict(shipping_snapshot)
        order.payment_link_id = "plink_test123"
        order.payment_link_url = None
        order.payment_link_status = None
        order.payment_id = None
        order.stock_adjusted = False
        order.shipment = shipment
        order.created_at = datetime(2026, 10, 1, tzinfo=timezone.utc)
        order.seller_ids = {i.seller_id for i in order.items}
        order.has_seller = lambda seller_id: seller_id in order.seller_ids
        return order

    return _make


@pytest.fixture
def item_factory():
    """Expose make_item to tests that need extra order lines."""
    return make_item
