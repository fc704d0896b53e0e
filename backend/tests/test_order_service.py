"""Tests for order intake, cancellation and status updates."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from agrimart.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    ValidationFailedError,
)
from agrimart.models.enums import NotificationType, OrderStatus, PaymentMethod, PaymentStatus
from agrimart.schemas.order import OrderCreate
from agrimart.services.order_service import OrderService, RequestedLine


def make_product(name: str = "Organic Wheat Seeds") -> MagicMock:
    product = MagicMock()
    product.product_id = uuid4()
    product.seller_id = uuid4()
    product.name = name
    return product


def make_row(quantity: int = 10, price: str = "120.00", discounted: str = "99.00") -> MagicMock:
    row = MagicMock()
    row.quantity = quantity
    row.price = Decimal(price)
    row.discounted_price = Decimal(discounted)
    return row


@pytest.fixture
def address(mock_buyer, shipping_snapshot) -> MagicMock:
    address = MagicMock()
    address.address_id = uuid4()
    address.user_id = mock_buyer.user_id
    address.snapshot = MagicMock(return_value=dict(shipping_snapshot))
    return address


@pytest.fixture
def service(mock_db, address, mock_buyer) -> OrderService:
    """OrderService with every collaborator mocked out."""
    service = OrderService(mock_db, analytics=AsyncMock(), gateway=MagicMock())
    # A fresh link for one 99.00 line, created for mock_buyer
    service.gateway.fetch_payment_link = AsyncMock(
        return_value={
            "id": "plink_abc",
            "amount": 9900,
            "notes": {"user_id": str(mock_buyer.user_id)},
            "short_url": "https://rzp.io/i/abc",
        }
    )
    service._link_in_use = AsyncMock(return_value=False)
    service.inventory = MagicMock()
    service.inventory.get_product = AsyncMock()
    service.inventory.has_price_table = AsyncMock(return_value=True)
    service.inventory.find_size = AsyncMock()
    service.addresses = MagicMock()
    service.addresses.get_owned = AsyncMock(return_value=address)
    service.carts = MagicMock()
    service.carts.get_cart = AsyncMock(return_value=None)
    service.carts.clear = AsyncMock()
    service.notifications = MagicMock()
    service.notifications.notify = AsyncMock()
    # Reload after commit returns whatever was added to the session
    service.get_by_id = AsyncMock(side_effect=lambda *a, **k: mock_db.add.call_args.args[0])
    return service


class TestSingleProductIntake:
    """Test checkout of one product."""

    @pytest.mark.asyncio
    async def test_insufficient_stock_persists_nothing(self, service, mock_db, mock_buyer, address):
        """Test requesting more than available raises and writes no order."""
        product = make_product()
        service.inventory.get_product.return_value = product
        service.inventory.find_size.return_value = make_row(quantity=1)

        data = OrderCreate(
            product_id=product.product_id,
            seller_id=uuid4(),
            size="1kg",
            quantity=3,
            address_id=address.address_id,
            payment_method=PaymentMethod.COD,
        )
        with pytest.raises(InsufficientStockError) as exc_info:
            await service.create_order(mock_buyer, data)

        assert exc_info.value.message == "Insufficient stock"
        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_product(self, service, mock_db, mock_buyer, address):
        service.inventory.get_product.return_value = None
        lines = [RequestedLine(uuid4(), None, "1kg", 1)]

        with pytest.raises(NotFoundError) as exc_info:
            await service.place_order(
                mock_buyer, lines, address_id=address.address_id, payment_method=PaymentMethod.COD
            )

        assert exc_info.value.message == "Product not found"
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_seller_without_table(self, service, mock_buyer, address):
        service.inventory.get_product.return_value = make_product()
        service.inventory.has_price_table.return_value = False
        lines = [RequestedLine(uuid4(), uuid4(), "1kg", 1)]

        with pytest.raises(NotFoundError) as exc_info:
            await service.place_order(
                mock_buyer, lines, address_id=address.address_id, payment_method=PaymentMethod.COD
            )

        assert exc_info.value.message == "Seller not linked to product"

    @pytest.mark.asyncio
    async def test_cod_order_goes_to_processing(self, service, mock_db, mock_buyer, address):
        """Test COD orders are accepted immediately and announced."""
        product = make_product()
        seller_id = uuid4()
        service.inventory.get_product.return_value = product
        service.inventory.find_size.return_value = make_row(quantity=10)
        lines = [RequestedLine(product.product_id, seller_id, "1kg", 2)]

        order = await service.place_order(
            mock_buyer, lines, address_id=address.address_id, payment_method=PaymentMethod.COD
        )

        assert order.status == OrderStatus.PROCESSING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.total_amount == Decimal("198.00")
        assert order.stock_adjusted is False
        assert order.items[0].seller_id == seller_id
        assert order.items[0].seller_scoped is True
        mock_db.commit.assert_awaited_once()
        service.notifications.notify.assert_awaited_once()
        assert service.notifications.notify.call_args.args[1] == NotificationType.ORDER_PLACED
        service.analytics.invalidate.assert_awaited_once_with({seller_id})

    @pytest.mark.asyncio
    async def test_default_table_line_attributed_to_listing_seller(
        self, service, mock_buyer, address
    ):
        """Test a line naming no seller is priced from the default table."""
        product = make_product()
        service.inventory.get_product.return_value = product
        service.inventory.find_size.return_value = make_row()
        lines = [RequestedLine(product.product_id, None, "1kg", 1)]

        order = await service.place_order(
            mock_buyer, lines, address_id=address.address_id, payment_method=PaymentMethod.COD
        )

        service.inventory.find_size.assert_awaited_once_with(product.product_id, None, "1kg")
        assert order.items[0].seller_id == product.seller_id
        assert order.items[0].seller_scoped is False

    @pytest.mark.asyncio
    async def test_online_order_requires_payment_link(self, service, mock_db, mock_buyer, address):
        service.inventory.get_product.return_value = make_product()
        service.inventory.find_size.return_value = make_row()
        lines = [RequestedLine(uuid4(), None, "1kg", 1)]

        with pytest.raises(ValidationFailedError):
            await service.place_order(
                mock_buyer,
                lines,
                address_id=address.address_id,
                payment_method=PaymentMethod.ONLINE,
            )

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_online_order_stays_pending(self, service, mock_buyer, address):
        """Test online orders wait for payment and send no notification yet."""
        service.inventory.get_product.return_value = make_product()
        service.inventory.find_size.return_value = make_row()
        lines = [RequestedLine(uuid4(), None, "1kg", 1)]

        order = await service.place_order(
            mock_buyer,
            lines,
            address_id=address.address_id,
            payment_method=PaymentMethod.ONLINE,
            payment_link_id="plink_abc",
            from_cart=True,
        )

        assert order.status == OrderStatus.PENDING.value
        assert order.payment_link_id == "plink_abc"
        assert order.payment_link_url == "https://rzp.io/i/abc"
        service.gateway.fetch_payment_link.assert_awaited_once_with("plink_abc")
        service.carts.clear.assert_not_awaited()
        service.notifications.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_address_snapshot_is_frozen_copy(self, service, mock_buyer, address):
        service.inventory.get_product.return_value = make_product()
        service.inventory.find_size.return_value = make_row()
        lines = [RequestedLine(uuid4(), None, "1kg", 1)]

        order = await service.place_order(
            mock_buyer, lines, address_id=address.address_id, payment_method=PaymentMethod.COD
        )

        assert order.address_id == address.address_id
        assert order.shipping_address["city"] == "Pune"


class TestPaymentLinkChecks:
    """Test online intake only accepts a fresh link for this buyer and total."""

    @pytest.fixture
    def online(self, service, address):
        service.inventory.get_product.return_value = make_product()
        service.inventory.find_size.return_value = make_row()

        async def place(buyer):
            return await service.place_order(
                buyer,
                [RequestedLine(uuid4(), None, "1kg", 1)],
                address_id=address.address_id,
                payment_method=PaymentMethod.ONLINE,
                payment_link_id="plink_abc",
            )

        return place

    @pytest.mark.asyncio
    async def test_amount_must_match_total(self, service, online, mock_db, mock_buyer):
        service.gateway.fetch_payment_link.return_value["amount"] = 100

        with pytest.raises(ValidationFailedError) as exc_info:
            await online(mock_buyer)

        assert "does not match order total" in exc_info.value.message
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_link_must_belong_to_buyer(self, service, online, mock_db, mock_buyer):
        service.gateway.fetch_payment_link.return_value["notes"] = {"user_id": str(uuid4())}

        with pytest.raises(ValidationFailedError) as exc_info:
            await online(mock_buyer)

        assert exc_info.value.message == "Payment link does not belong to this buyer"
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_used_link_rejected(self, service, online, mock_db, mock_buyer):
        service._link_in_use.return_value = True

        with pytest.raises(ConflictError):
            await online(mock_buyer)

        service.gateway.fetch_payment_link.assert_not_awaited()
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_racing_reuse_becomes_conflict(self, service, online, mock_db, mock_buyer):
        """Test the unique constraint on the link id surfaces as a conflict."""
        mock_db.commit.side_effect = [None, IntegrityError("INSERT", {}, Exception("duplicate"))]

        with pytest.raises(ConflictError):
            await online(mock_buyer)

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_online_requires_gateway(self, service, online, mock_buyer):
        service.gateway = None

        with pytest.raises(ValidationFailedError):
            await online(mock_buyer)


class TestCartIntake:
    """Test checkout of the whole cart."""

    @pytest.mark.asyncio
    async def test_empty_cart(self, service, mock_buyer, address):
        data = OrderCreate(address_id=address.address_id, payment_method=PaymentMethod.COD)

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create_order(mock_buyer, data)

        assert exc_info.value.message.startswith("Cart is empty")

    @pytest.mark.asyncio
    async def test_cart_is_all_or_nothing(self, service, mock_db, mock_buyer, address):
        """Test one bad line rejects the whole cart, reporting every failing line."""
        good = make_product("Vermicompost")
        missing_size = make_product("Neem Oil")
        short = make_product("Wheat Seeds")
        products = {p.product_id: p for p in (good, missing_size, short)}
        rows = {
            good.product_id: make_row(quantity=10),
            missing_size.product_id: None,
            short.product_id: make_row(quantity=1),
        }
        service.inventory.get_product.side_effect = lambda pid: products[pid]
        service.inventory.find_size.side_effect = lambda pid, sid, size: rows[pid]

        cart = MagicMock()
        cart.items = [
            MagicMock(product_id=p.product_id, seller_id=uuid4(), size="1kg", quantity=4)
            for p in (good, missing_size, short)
        ]
        service.carts.get_cart.return_value = cart

        data = OrderCreate(address_id=address.address_id, payment_method=PaymentMethod.COD)
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create_order(mock_buyer, data)

        assert exc_info.value.message == "Size 1kg not available for Neem Oil"
        assert exc_info.value.errors == [
            "Size 1kg not available for Neem Oil",
            "Insufficient stock for Wheat Seeds. Available: 1, Requested: 4",
        ]
        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_awaited()
        service.carts.clear.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cod_cart_is_cleared_with_order(self, service, mock_db, mock_buyer, address):
        product = make_product()
        service.inventory.get_product.return_value = product
        service.inventory.find_size.return_value = make_row()
        cart = MagicMock()
        cart.items = [
            MagicMock(product_id=product.product_id, seller_id=uuid4(), size="1kg", quantity=1)
        ]
        service.carts.get_cart.return_value = cart

        data = OrderCreate(address_id=address.address_id, payment_method=PaymentMethod.COD)
        order = await service.create_order(mock_buyer, data)

        assert len(order.items) == 1
        service.carts.clear.assert_awaited_once_with(mock_buyer.user_id)
        mock_db.commit.assert_awaited_once()


class TestTransitions:
    """Test buyer cancellation and seller status updates."""

    @pytest.fixture
    def transitions(self, mock_db) -> OrderService:
        service = OrderService(mock_db)
        service.notifications = MagicMock()
        service.notifications.notify = AsyncMock()
        return service

    @pytest.mark.asyncio
    async def test_cancel_pending_order(self, transitions, mock_db, mock_buyer, make_order):
        order = make_order()
        transitions.get_by_id = AsyncMock(return_value=order)

        result = await transitions.cancel_order(mock_buyer, order.order_id)

        assert result.status == OrderStatus.CANCELLED.value
        mock_db.commit.assert_awaited_once()
        assert transitions.notifications.notify.call_args.args[1] == NotificationType.ORDER_CANCELLED

    @pytest.mark.asyncio
    async def test_cannot_cancel_shipped_order(self, transitions, mock_db, mock_buyer, make_order):
        order = make_order(status=OrderStatus.SHIPPED.value)
        transitions.get_by_id = AsyncMock(return_value=order)

        with pytest.raises(ConflictError):
            await transitions.cancel_order(mock_buyer, order.order_id)

        assert order.status == OrderStatus.SHIPPED.value
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cannot_cancel_with_live_shipment(self, transitions, mock_buyer, make_order):
        shipment = MagicMock(is_live=True)
        order = make_order(status=OrderStatus.PROCESSING.value, shipment=shipment)
        transitions.get_by_id = AsyncMock(return_value=order)

        with pytest.raises(ConflictError):
            await transitions.cancel_order(mock_buyer, order.order_id)

    @pytest.mark.asyncio
    async def test_cannot_cancel_someone_elses_order(self, transitions, mock_seller, make_order):
        order = make_order()
        transitions.get_by_id = AsyncMock(return_value=order)

        with pytest.raises(ForbiddenError):
            await transitions.cancel_order(mock_seller, order.order_id)

    @pytest.mark.asyncio
    async def test_seller_updates_status(self, transitions, mock_seller, make_order):
        order = make_order(status=OrderStatus.PROCESSING.value)
        transitions.get_by_id = AsyncMock(return_value=order)

        result = await transitions.update_status(mock_seller, order.order_id, OrderStatus.SHIPPED)

        assert result.status == OrderStatus.SHIPPED.value
        assert (
            transitions.notifications.notify.call_args.args[1]
            == NotificationType.ORDER_STATUS_UPDATED
        )

    @pytest.mark.asyncio
    async def test_unrelated_seller_cannot_update(self, transitions, make_order):
        order = make_order()
        transitions.get_by_id = AsyncMock(return_value=order)
        stranger = MagicMock(user_id=uuid4(), is_admin=False)

        with pytest.raises(ForbiddenError):
            await transitions.update_status(stranger, order.order_id, OrderStatus.SHIPPED)
