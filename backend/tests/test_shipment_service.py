"""Tests for shipment creation, tracking, cancellation and courier operations."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from agrimart.core.config import settings
from agrimart.core.exceptions import ConflictError, ForbiddenError, ShippingProviderError
from agrimart.models.address import Address
from agrimart.models.enums import (
    NotificationType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShipmentState,
)
from agrimart.models.order import Order, OrderItem
from agrimart.schemas.shipment import ShippingCheckoutRequest
from agrimart.services.shipment_service import (
    ShipmentService,
    awb_details,
    build_provider_order,
    tracking_label,
)


@pytest.fixture
def provider() -> MagicMock:
    provider = MagicMock()
    provider.create_order = AsyncMock(
        return_value={"order_id": 111, "shipment_id": 222, "status": "NEW"}
    )
    provider.get_pickup_locations = AsyncMock(return_value=[{"pickup_location": "Warehouse-1"}])
    provider.track_shipment = AsyncMock()
    provider.cancel_order = AsyncMock(return_value={"status": 200})
    provider.assign_awb = AsyncMock()
    provider.generate_label = AsyncMock()
    provider.check_serviceability = AsyncMock()
    return provider


@pytest.fixture
def service(mock_db, provider, mock_buyer) -> ShipmentService:
    service = ShipmentService(mock_db, provider)
    service.notifications = MagicMock()
    service.notifications.notify = AsyncMock()
    mock_db.get = AsyncMock(return_value=mock_buyer)
    return service


def make_shipment(
    state: str = ShipmentState.CREATED.value,
    provider_order_id: str | None = "111",
    shipment_id: str | None = "222",
    last_error: str | None = None,
) -> MagicMock:
    shipment = MagicMock()
    shipment.state = state
    shipment.provider_order_id = provider_order_id
    shipment.shipment_id = shipment_id
    shipment.last_error = last_error
    shipment.awb_code = None
    shipment.is_live = state in (ShipmentState.CREATED.value, ShipmentState.TRACKED.value)
    return shipment


def use_order(service: ShipmentService, order) -> None:
    service.orders = MagicMock()
    service.orders.get_by_id = AsyncMock(return_value=order)


class TestProviderPayload:
    def test_payload_from_order(self, make_order, item_factory):
        order = make_order(
            payment_method=PaymentMethod.COD.value,
            items=[item_factory(quantity=2), item_factory(quantity=1, size="5kg")],
        )

        payload = build_provider_order(order, "buyer@example.com", "Warehouse-1")

        assert payload["order_id"] == str(order.order_id)
        assert payload["pickup_location"] == "Warehouse-1"
        assert payload["payment_method"] == "COD"
        assert payload["weight"] == 1.5
        assert payload["billing_pincode"] == "411001"
        assert payload["order_items"][1]["sku"] == f"{order.items[1].product_id}-5kg"
        assert payload["order_items"][0]["selling_price"] == 99.0

    def test_prepaid_for_online_orders(self, make_order):
        payload = build_provider_order(make_order(), "b@example.com", "Primary")

        assert payload["payment_method"] == "Prepaid"

    def test_address_edit_does_not_change_order(self, mock_buyer):
        """Test the order ships to the address as it was when the order was placed."""
        address = Address(
            user_id=mock_buyer.user_id,
            name="Test Buyer",
            mobile="9000000001",
            street_address="1 Mandi Road",
            city="Pune",
            state="Maharashtra",
            zip_code="411001",
        )
        order = Order(
            order_id=uuid4(),
            user_id=mock_buyer.user_id,
            total_amount=Decimal("99.00"),
            payment_method=PaymentMethod.COD.value,
            shipping_address=address.snapshot(),
            items=[
                OrderItem(
                    product_id=uuid4(),
                    seller_id=uuid4(),
                    product_name="Vermicompost",
                    size="5kg",
                    unit_price=Decimal("120.00"),
                    discounted_price=Decimal("99.00"),
                    quantity=1,
                )
            ],
            created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
        )

        address.city = "Nashik"
        address.zip_code = "422001"
        payload = build_provider_order(order, "b@example.com", "Primary")

        assert payload["billing_city"] == "Pune"
        assert payload["billing_pincode"] == "411001"
        assert order.shipping_address["city"] == "Pune"


class TestResponseHelpers:
    def test_tracking_label(self):
        data = {"tracking_data": {"shipment_track": [{"current_status": "DELIVERED"}]}}

        assert tracking_label(data) == "DELIVERED"
        assert tracking_label({"tracking_data": {}}) is None

    def test_awb_details_nested(self):
        data = {"response": {"data": {"awb_code": 1234, "courier_name": "Delhivery"}}}

        assert awb_details(data) == ("1234", "Delhivery")

    def test_awb_details_missing(self):
        assert awb_details({}) == (None, None)


class TestCreateShipment:
    @pytest.mark.asyncio
    async def test_creates_and_stores_both_ids(
        self, service, mock_db, provider, mock_seller, make_order
    ):
        order = make_order(
            payment_method=PaymentMethod.COD.value, status=OrderStatus.PROCESSING.value
        )
        use_order(service, order)

        await service.create_for_order(mock_seller, order.order_id)

        shipment = mock_db.add.call_args.args[0]
        assert shipment.state == ShipmentState.CREATED.value
        assert shipment.provider_order_id == "111"
        assert shipment.shipment_id == "222"
        assert shipment.pickup_location == "Warehouse-1"
        assert shipment.last_error is None
        assert provider.create_order.call_args.args[0]["pickup_location"] == "Warehouse-1"
        assert mock_db.commit.await_count == 2
        assert service.notifications.notify.call_args.args[1] == NotificationType.ORDER_CONFIRMED

    @pytest.mark.asyncio
    async def test_unpaid_online_order_rejected(self, service, provider, mock_seller, make_order):
        order = make_order()
        use_order(service, order)

        with pytest.raises(ConflictError):
            await service.create_for_order(mock_seller, order.order_id)

        provider.create_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_paid_online_order_allowed(self, service, provider, mock_seller, make_order):
        order = make_order(
            payment_status=PaymentStatus.COMPLETED.value, status=OrderStatus.PROCESSING.value
        )
        use_order(service, order)

        await service.create_for_order(mock_seller, order.order_id)

        provider.create_order.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancelled_order_rejected(self, service, mock_seller, make_order):
        order = make_order(payment_method=PaymentMethod.COD.value, status=OrderStatus.CANCELLED.value)
        use_order(service, order)

        with pytest.raises(ConflictError):
            await service.create_for_order(mock_seller, order.order_id)

    @pytest.mark.asyncio
    async def test_existing_shipment_rejected(self, service, mock_seller, make_order):
        order = make_order(payment_method=PaymentMethod.COD.value, shipment=make_shipment())
        use_order(service, order)

        with pytest.raises(ConflictError):
            await service.create_for_order(mock_seller, order.order_id)

    @pytest.mark.asyncio
    async def test_creation_in_progress_rejected(self, service, mock_seller, make_order):
        shipment = make_shipment(
            state=ShipmentState.PENDING.value, provider_order_id=None, shipment_id=None
        )
        order = make_order(payment_method=PaymentMethod.COD.value, shipment=shipment)
        use_order(service, order)

        with pytest.raises(ConflictError) as exc_info:
            await service.create_for_order(mock_seller, order.order_id)

        assert "in progress" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_failed_attempt_can_be_retried(
        self, service, mock_db, provider, mock_seller, make_order
    ):
        shipment = make_shipment(
            state=ShipmentState.PENDING.value,
            provider_order_id=None,
            shipment_id=None,
            last_error="Wrong Pickup location",
        )
        order = make_order(payment_method=PaymentMethod.COD.value, shipment=shipment)
        use_order(service, order)

        await service.create_for_order(mock_seller, order.order_id)

        mock_db.add.assert_not_called()
        assert shipment.state == ShipmentState.CREATED.value
        assert shipment.last_error is None

    @pytest.mark.asyncio
    async def test_provider_failure_recorded(
        self, service, mock_db, provider, mock_seller, make_order
    ):
        order = make_order(payment_method=PaymentMethod.COD.value)
        use_order(service, order)
        provider.create_order.side_effect = ShippingProviderError(
            "Shiprocket order creation failed: Wrong Pickup location entered."
        )

        with pytest.raises(ShippingProviderError):
            await service.create_for_order(mock_seller, order.order_id)

        shipment = mock_db.add.call_args.args[0]
        assert shipment.state == ShipmentState.PENDING.value
        assert "Wrong Pickup location" in shipment.last_error
        assert shipment.provider_order_id is None
        service.notifications.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pickup_location_fallback(self, service, provider):
        provider.get_pickup_locations.side_effect = ShippingProviderError("unauthorized")

        assert await service.resolve_pickup_location() == settings.SHIPROCKET_PICKUP_LOCATION

    @pytest.mark.asyncio
    async def test_unrelated_seller_rejected(self, service, make_order):
        order = make_order(payment_method=PaymentMethod.COD.value)
        use_order(service, order)
        stranger = MagicMock(user_id=uuid4(), is_admin=False)

        with pytest.raises(ForbiddenError):
            await service.create_for_order(stranger, order.order_id)


class TestCheckout:
    @pytest.fixture
    def request_data(self) -> dict:
        return {
            "items": [{"product_id": str(uuid4()), "size": "1kg", "quantity": 1}],
            "address_id": str(uuid4()),
        }

    @pytest.mark.asyncio
    async def test_online_checkout_defers_shipment(
        self, service, provider, mock_buyer, make_order, request_data
    ):
        order = make_order()
        service.orders = MagicMock()
        service.orders.place_order = AsyncMock(return_value=order)
        data = ShippingCheckoutRequest(
            **request_data, payment_method="online", payment_link_id="plink_1"
        )

        result, message = await service.checkout(mock_buyer, data)

        assert result is order
        assert "after payment confirmation" in message
        provider.create_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cod_checkout_reports_provider_failure(
        self, service, provider, mock_buyer, make_order, request_data
    ):
        """Test the order stands even when the provider rejects the shipment."""
        order = make_order(payment_method=PaymentMethod.COD.value, status=OrderStatus.PROCESSING.value)
        service.orders = MagicMock()
        service.orders.place_order = AsyncMock(return_value=order)
        service.orders.get_by_id = AsyncMock(return_value=order)
        provider.create_order.side_effect = ShippingProviderError("courier unavailable")
        data = ShippingCheckoutRequest(**request_data, payment_method="cod")

        result, message = await service.checkout(mock_buyer, data)

        assert result is order
        assert message == "Order placed but shipment creation failed: courier unavailable"


class TestTracking:
    @pytest.mark.asyncio
    async def test_delivered_updates_order(self, service, mock_buyer, provider, make_order):
        shipment = make_shipment()
        order = make_order(status=OrderStatus.SHIPPED.value, shipment=shipment)
        service._get_by_shipment_id = AsyncMock(return_value=(shipment, order))
        use_order(service, order)
        provider.track_shipment.return_value = {
            "tracking_data": {"shipment_track": [{"current_status": "Delivered"}]}
        }

        result, data = await service.track(mock_buyer, "222")

        provider.track_shipment.assert_awaited_once_with("222")
        assert result.status == OrderStatus.DELIVERED.value
        assert shipment.state == ShipmentState.TRACKED.value
        assert shipment.provider_status == "Delivered"
        assert data == {"shipment_track": [{"current_status": "Delivered"}]}
        assert service.notifications.notify.call_args.args[1] == NotificationType.ORDER_DELIVERED

    @pytest.mark.asyncio
    async def test_in_transit_marks_shipped(self, service, mock_buyer, provider, make_order):
        shipment = make_shipment()
        order = make_order(status=OrderStatus.PROCESSING.value, shipment=shipment)
        service._get_by_shipment_id = AsyncMock(return_value=(shipment, order))
        use_order(service, order)
        provider.track_shipment.return_value = {
            "tracking_data": {"shipment_track": [{"current_status": "IN TRANSIT"}]}
        }

        result, _ = await service.track(mock_buyer, "222")

        assert result.status == OrderStatus.SHIPPED.value

    @pytest.mark.asyncio
    async def test_stranger_cannot_track(self, service, make_order):
        shipment = make_shipment()
        order = make_order(shipment=shipment)
        service._get_by_shipment_id = AsyncMock(return_value=(shipment, order))
        stranger = MagicMock(user_id=uuid4(), is_admin=False)

        with pytest.raises(ForbiddenError):
            await service.track(stranger, "222")


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_uses_provider_order_id(
        self, service, mock_db, provider, mock_buyer, make_order
    ):
        shipment = make_shipment(provider_order_id="111", shipment_id="222")
        order = make_order(status=OrderStatus.PROCESSING.value, shipment=shipment)
        service._get_by_shipment_id = AsyncMock(return_value=(shipment, order))
        use_order(service, order)

        result, _ = await service.cancel(mock_buyer, "222")

        provider.cancel_order.assert_awaited_once_with("111")
        assert shipment.state == ShipmentState.CANCELLED.value
        assert result.status == OrderStatus.CANCELLED.value
        mock_db.commit.assert_awaited_once()
        assert service.notifications.notify.call_args.args[1] == NotificationType.ORDER_CANCELLED

    @pytest.mark.asyncio
    async def test_delivered_order_cannot_be_cancelled(
        self, service, mock_db, provider, mock_buyer, make_order
    ):
        shipment = make_shipment(state=ShipmentState.TRACKED.value)
        order = make_order(status=OrderStatus.DELIVERED.value, shipment=shipment)
        service._get_by_shipment_id = AsyncMock(return_value=(shipment, order))

        with pytest.raises(ConflictError) as exc_info:
            await service.cancel(mock_buyer, "222")

        assert "cannot be cancelled" in exc_info.value.message
        assert order.status == OrderStatus.DELIVERED.value
        assert shipment.state == ShipmentState.TRACKED.value
        provider.cancel_order.assert_not_awaited()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_cancelled(self, service, provider, mock_buyer, make_order):
        shipment = make_shipment(state=ShipmentState.CANCELLED.value)
        order = make_order(status=OrderStatus.CANCELLED.value, shipment=shipment)
        service._get_by_shipment_id = AsyncMock(return_value=(shipment, order))

        with pytest.raises(ConflictError):
            await service.cancel(mock_buyer, "222")

        provider.cancel_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_provider_failure_leaves_state(
        self, service, mock_db, provider, mock_buyer, make_order
    ):
        shipment = make_shipment()
        order = make_order(status=OrderStatus.PROCESSING.value, shipment=shipment)
        service._get_by_shipment_id = AsyncMock(return_value=(shipment, order))
        provider.cancel_order.side_effect = ShippingProviderError("Order Id does not exist")

        with pytest.raises(ShippingProviderError):
            await service.cancel(mock_buyer, "222")

        assert order.status == OrderStatus.PROCESSING.value
        assert shipment.state == ShipmentState.CREATED.value
        mock_db.commit.assert_not_awaited()


class TestCourierOperations:
    @pytest.mark.asyncio
    async def test_assign_awb(self, service, mock_db, provider, mock_seller, make_order):
        shipment = make_shipment()
        order = make_order(shipment=shipment)
        use_order(service, order)
        provider.assign_awb.return_value = {
            "awb_assign_status": 1,
            "response": {"data": {"awb_code": "AWB123", "courier_name": "Delhivery"}},
        }

        await service.assign_awb(mock_seller, order.order_id, courier_id=7)

        provider.assign_awb.assert_awaited_once_with("222", 7)
        assert shipment.awb_code == "AWB123"
        assert shipment.courier_name == "Delhivery"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_awb_already_assigned(self, service, provider, mock_seller, make_order):
        shipment = make_shipment()
        shipment.awb_code = "AWB123"
        use_order(service, make_order(shipment=shipment))

        with pytest.raises(ConflictError):
            await service.assign_awb(mock_seller, uuid4(), courier_id=7)

        provider.assign_awb.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_awb_requires_shipment(self, service, mock_seller, make_order):
        use_order(service, make_order())

        with pytest.raises(ConflictError) as exc_info:
            await service.assign_awb(mock_seller, uuid4(), courier_id=7)

        assert exc_info.value.message == "Please create shipment first"

    @pytest.mark.asyncio
    async def test_generate_label(self, service, provider, mock_seller, make_order):
        shipment = make_shipment()
        use_order(service, make_order(shipment=shipment))
        provider.generate_label.return_value = {"label_created": 1, "label_url": "https://x/l.pdf"}

        await service.generate_label(mock_seller, uuid4())

        provider.generate_label.assert_awaited_once_with(["222"])
        assert shipment.label_url == "https://x/l.pdf"

    @pytest.mark.asyncio
    async def test_serviceability_from_configured_pickup(self, service, provider):
        provider.check_serviceability.return_value = {"data": {"available_courier_companies": []}}

        data = await service.check_serviceability("411001", 1.0, cod=True)

        provider.check_serviceability.assert_awaited_once_with(
            settings.SHIPROCKET_PICKUP_PINCODE, "411001", 1.0, True
        )
        assert data == {"available_courier_companies": []}
