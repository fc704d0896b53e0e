"""Shipment service: provider shipments attached to orders.

Each order has at most one Shipment row whose ``state`` moves
pending -> created -> tracked, or to cancelled. The provider's order id is
used for cancellation and its shipment id for tracking; both are stored and
never substituted for each other.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.config import settings
from agrimart.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ShippingProviderError,
)
from agrimart.models.enums import (
    NotificationType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShipmentState,
)
from agrimart.models.order import Order, OrderItem
from agrimart.models.shipment import Shipment
from agrimart.models.user import User
from agrimart.schemas.shipment import ShippingCheckoutRequest
from agrimart.services.analytics_service import AnalyticsService
from agrimart.services.notification_service import NotificationService
from agrimart.services.order_service import OrderService, RequestedLine
from agrimart.services.razorpay_client import RazorpayClient
from agrimart.services.shiprocket_client import ShippingProvider

logger = logging.getLogger(__name__)

# Default parcel used when products carry no dimensions
WEIGHT_PER_UNIT_KG = 0.5
BOX_DIMENSIONS_CM = {"length": 10, "breadth": 10, "height": 10}

IN_TRANSIT_LABELS = {"PICKED UP", "SHIPPED", "IN TRANSIT", "OUT FOR DELIVERY"}


def build_provider_order(
    order: Order, customer_email: str, pickup_location: str
) -> dict[str, Any]:
    """Map an order and its address snapshot to the provider's order schema."""
    address = order.shipping_address
    items = [
        {
            "name": item.product_name,
            "sku": f"{item.product_id}-{item.size}",
            "units": item.quantity,
            "selling_price": float(item.discounted_price),
            "discount": float(item.unit_price - item.discounted_price),
            "tax": 0,
            "hsn": "",
        }
        for item in order.items
    ]
    return {
        "order_id": str(order.order_id),
        "order_date": order.created_at.date().isoformat(),
        "pickup_location": pickup_location,
        "billing_customer_name": address["name"],
        "billing_last_name": "",
        "billing_address": address["street_address"],
        "billing_address_2": address["city"],
        "billing_city": address["city"],
        "billing_pincode": address["zip_code"],
        "billing_state": address["state"],
        "billing_country": "India",
        "billing_email": customer_email,
        "billing_phone": address["mobile"],
        "shipping_is_billing": True,
        "order_items": items,
        "payment_method": "COD" if order.payment_method == PaymentMethod.COD.value else "Prepaid",
        "sub_total": float(order.total_amount),
        **BOX_DIMENSIONS_CM,
        "weight": sum(item.quantity for item in order.items) * WEIGHT_PER_UNIT_KG,
    }


def tracking_label(data: dict[str, Any]) -> str | None:
    """Current status label from a tracking response."""
    tracking = data.get("tracking_data") or {}
    tracks = tracking.get("shipment_track") or []
    if tracks and isinstance(tracks[0], dict):
        label = tracks[0].get("current_status") or tracks[0].get("shipment_status_label")
        if label:
            return str(label)
    return None


def awb_details(data: dict[str, Any]) -> tuple[str | None, str | None]:
    """AWB code and courier name from an assignment response."""
    nested = ((data.get("response") or {}).get("data")) or {}
    awb = data.get("awb_code") or nested.get("awb_code")
    courier = data.get("courier_name") or nested.get("courier_name")
    return (str(awb) if awb else None, courier)


class ShipmentService:
    """Service class for shipment operations."""

    def __init__(
        self,
        db: AsyncSession,
        provider: ShippingProvider,
        analytics: AnalyticsService | None = None,
        gateway: RazorpayClient | None = None,
    ):
        self.db = db
        self.provider = provider
        self.analytics = analytics
        self.orders = OrderService(db, analytics, gateway)
        self.notifications = NotificationService(db)

    # ==================== Lookups ====================

    async def _get_order(self, order_id: UUID, lock: bool = False) -> Order:
        order = await self.orders.get_by_id(order_id, lock=lock)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    def _require_seller(order: Order, seller: User, action: str) -> None:
        if not (seller.is_admin or order.has_seller(seller.user_id)):
            raise ForbiddenError(f"You are not authorized to {action} for this order")

    @staticmethod
    def _require_party(order: Order, user: User, action: str) -> None:
        if not (
            user.is_admin or order.user_id == user.user_id or order.has_seller(user.user_id)
        ):
            raise ForbiddenError(f"You are not authorized to {action} this shipment")

    async def _get_by_shipment_id(self, shipment_id: str) -> tuple[Shipment, Order]:
        result = await self.db.execute(select(Shipment).where(Shipment.shipment_id == shipment_id))
        shipment = result.scalar_one_or_none()
        if shipment is None:
            raise NotFoundError("Shipment not found")
        order = await self._get_order(shipment.order_id)
        return order.shipment, order

    async def resolve_pickup_location(self) -> str:
        """First pickup location registered with the provider, else the configured one."""
        try:
            locations = await self.provider.get_pickup_locations()
        except ShippingProviderError as e:
            logger.warning(f"Could not fetch pickup locations, using fallback: {e.message}")
            return settings.SHIPROCKET_PICKUP_LOCATION
        for location in locations:
            name = location.get("pickup_location") if isinstance(location, dict) else None
            if name:
                return name
        return settings.SHIPROCKET_PICKUP_LOCATION

    # ==================== Creation ====================

    async def create_for_order(self, seller: User, order_id: UUID) -> Order:
        """Create the provider shipment for an order the seller has items in.

        Raises:
            NotFoundError: Order does not exist
            ForbiddenError: Seller has no line in the order
            ConflictError: Order cancelled, unpaid, or already shipped
            ShippingProviderError: Provider rejected the order
        """
        order = await self._get_order(order_id)
        self._require_seller(order, seller, "create shipment")
        return await self._create_shipment(order)

    async def _create_shipment(self, order: Order) -> Order:
        self._check_shippable(order)
        pickup_location = await self.resolve_pickup_location()
        buyer = await self.db.get(User, order.user_id)

        # Record the attempt before calling out so a concurrent request sees it
        order = await self._get_order(order.order_id, lock=True)
        self._check_shippable(order)
        shipment = order.shipment
        if shipment is None:
            shipment = Shipment(order_id=order.order_id)
            self.db.add(shipment)
        shipment.state = ShipmentState.PENDING.value
        shipment.pickup_location = pickup_location
        shipment.last_error = None
        payload = build_provider_order(order, buyer.email if buyer else "", pickup_location)
        await self.db.commit()

        try:
            response = await self.provider.create_order(payload)
        except ShippingProviderError as e:
            shipment.last_error = e.message
            await self.db.commit()
            logger.error(f"Shipment creation failed for order {order.order_id}: {e.message}")
            raise

        shipment.state = ShipmentState.CREATED.value
        shipment.provider_order_id = str(response["order_id"])
        shipment.shipment_id = str(response["shipment_id"]) if response.get("shipment_id") else None
        shipment.provider_status = response.get("status")
        shipment.awb_code = str(response["awb_code"]) if response.get("awb_code") else None
        shipment.courier_name = response.get("courier_name")
        shipment.raw = response
        await self.db.commit()
        logger.info(
            f"Shipment created for order {order.order_id}: provider order "
            f"{shipment.provider_order_id}, shipment {shipment.shipment_id}"
        )

        await self.notifications.notify(
            order.user_id,
            NotificationType.ORDER_CONFIRMED,
            "Order Confirmed",
            f"Your order #{str(order.order_id)[-8:]} is confirmed and being prepared for shipment.",
            order_id=order.order_id,
            data={"shipment_id": shipment.shipment_id},
        )
        return await self._get_order(order.order_id)

    @staticmethod
    def _check_shippable(order: Order) -> None:
        if order.status == OrderStatus.CANCELLED.value:
            raise ConflictError("Cannot create a shipment for a cancelled order")
        if (
            order.payment_method == PaymentMethod.ONLINE.value
            and order.payment_status != PaymentStatus.COMPLETED.value
        ):
            raise ConflictError("Order payment is not completed yet")
        shipment = order.shipment
        if shipment is not None:
            if shipment.is_live:
                raise ConflictError("Shipment already created for this order")
            if shipment.state == ShipmentState.PENDING.value and shipment.last_error is None:
                raise ConflictError("Shipment creation is already in progress")
            if shipment.state == ShipmentState.CANCELLED.value:
                raise ConflictError("Shipment for this order was cancelled")

    async def checkout(self, buyer: User, data: ShippingCheckoutRequest) -> tuple[Order, str]:
        """Place an order and create its shipment straight away.

        Online orders wait for payment confirmation; their shipment is
        created later by the seller.

        Returns:
            Tuple of (order, message)
        """
        lines = [
            RequestedLine(item.product_id, item.seller_id, item.size, item.quantity)
            for item in data.items
        ]
        order = await self.orders.place_order(
            buyer,
            lines,
            address_id=data.address_id,
            payment_method=data.payment_method,
            payment_link_id=data.payment_link_id,
        )
        if data.payment_method != PaymentMethod.COD:
            return order, "Order placed; shipment will be created after payment confirmation"

        try:
            order = await self._create_shipment(order)
        except ShippingProviderError as e:
            order = await self._get_order(order.order_id)
            return order, f"Order placed but shipment creation failed: {e.message}"
        return order, "Order placed and shipment created successfully"

    # ==================== Listing ====================

    async def list_for_buyer(self, buyer: User) -> list[Order]:
        result = await self.db.execute(
            select(Order)
            .join(Shipment, Shipment.order_id == Order.order_id)
            .where(Order.user_id == buyer.user_id)
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_seller(self, seller: User) -> list[Order]:
        result = await self.db.execute(
            select(Order)
            .join(Shipment, Shipment.order_id == Order.order_id)
            .where(Order.items.any(OrderItem.seller_id == seller.user_id))
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    # ==================== Tracking / Cancellation ====================

    async def track(self, user: User, shipment_id: str) -> tuple[Order, dict[str, Any]]:
        """Fetch tracking from the provider by shipment id and record the status.

        Returns:
            Tuple of (updated order, provider tracking data)
        """
        shipment, order = await self._get_by_shipment_id(shipment_id)
        self._require_party(order, user, "track")
        if not shipment.is_live:
            raise ConflictError("Shipment is not active")

        data = await self.provider.track_shipment(shipment_id)
        label = tracking_label(data)

        order = await self._get_order(order.order_id, lock=True)
        shipment = order.shipment
        shipment.state = ShipmentState.TRACKED.value
        if label:
            shipment.provider_status = label

        event = None
        normalized = (label or "").upper()
        if normalized == "DELIVERED" and order.status != OrderStatus.DELIVERED.value:
            order.status = OrderStatus.DELIVERED.value
            event = NotificationType.ORDER_DELIVERED
        elif normalized in IN_TRANSIT_LABELS and order.status in (
            OrderStatus.PENDING.value,
            OrderStatus.PROCESSING.value,
        ):
            order.status = OrderStatus.SHIPPED.value
            event = NotificationType.ORDER_SHIPPED
        await self.db.commit()

        if event is not None:
            await self.notifications.notify(
                order.user_id,
                event,
                "Order Delivered" if event == NotificationType.ORDER_DELIVERED else "Order Shipped",
                f"Your order #{str(order.order_id)[-8:]} is now {order.status}",
                order_id=order.order_id,
                data={"shipment_id": shipment_id, "status": label},
            )
        return await self._get_order(order.order_id), data.get("tracking_data", data)

    async def cancel(self, user: User, shipment_id: str) -> tuple[Order, dict[str, Any]]:
        """Cancel a shipment with the provider and cancel its order.

        Raises:
            NotFoundError: No shipment with this id
            ForbiddenError: User is neither buyer nor seller of the order
            ConflictError: Order delivered or shipment already cancelled
        """
        shipment, order = await self._get_by_shipment_id(shipment_id)
        self._require_party(order, user, "cancel")
        self._check_cancellable(order, shipment)

        # Cancellation is keyed by the provider's order id, not the shipment id
        response = await self.provider.cancel_order(shipment.provider_order_id)

        order = await self._get_order(order.order_id, lock=True)
        self._check_cancellable(order, order.shipment)
        order.shipment.state = ShipmentState.CANCELLED.value
        order.status = OrderStatus.CANCELLED.value
        await self.db.commit()
        logger.info(f"Shipment {shipment_id} cancelled, order {order.order_id} cancelled")

        await self.notifications.notify(
            order.user_id,
            NotificationType.ORDER_CANCELLED,
            "Order Cancelled",
            f"Your order #{str(order.order_id)[-8:]} has been cancelled.",
            order_id=order.order_id,
            data={"shipment_id": shipment_id},
        )
        if self.analytics:
            await self.analytics.invalidate(order.seller_ids)
        return await self._get_order(order.order_id), response

    @staticmethod
    def _check_cancellable(order: Order, shipment: Shipment) -> None:
        if order.status == OrderStatus.DELIVERED.value:
            raise ConflictError("Order has already been delivered and cannot be cancelled")
        if (
            shipment.state == ShipmentState.CANCELLED.value
            or order.status == OrderStatus.CANCELLED.value
        ):
            raise ConflictError("Shipment is already cancelled")
        if not shipment.provider_order_id:
            raise ConflictError("Shipment has not been created with the provider")

    # ==================== Courier / Label ====================

    async def _live_shipment(self, seller: User, order_id: UUID, action: str) -> tuple[Order, Shipment]:
        order = await self._get_order(order_id)
        self._require_seller(order, seller, action)
        shipment = order.shipment
        if shipment is None or not shipment.is_live or not shipment.shipment_id:
            raise ConflictError("Please create shipment first")
        return order, shipment

    async def assign_awb(self, seller: User, order_id: UUID, courier_id: int) -> Order:
        order, shipment = await self._live_shipment(seller, order_id, "generate AWB")
        if shipment.awb_code:
            raise ConflictError(f"AWB already generated: {shipment.awb_code}")

        response = await self.provider.assign_awb(shipment.shipment_id, courier_id)
        awb, courier_name = awb_details(response)
        if not awb:
            raise ShippingProviderError("AWB assignment failed: no AWB code in response", payload=response)

        shipment.awb_code = awb
        shipment.courier_id = courier_id
        shipment.courier_name = courier_name
        await self.db.commit()
        logger.info(f"AWB {awb} assigned to shipment {shipment.shipment_id}")
        return await self._get_order(order_id)

    async def generate_label(self, seller: User, order_id: UUID) -> Order:
        order, shipment = await self._live_shipment(seller, order_id, "generate label")

        response = await self.provider.generate_label([shipment.shipment_id])
        label_url = response.get("label_url")
        if not label_url:
            raise ShippingProviderError(
                "Label generation failed: no label_url in response", payload=response
            )
        shipment.label_url = label_url
        await self.db.commit()
        return await self._get_order(order_id)

    async def check_serviceability(self, delivery_pincode: str, weight: float, cod: bool) -> Any:
        data = await self.provider.check_serviceability(
            settings.SHIPROCKET_PICKUP_PINCODE, delivery_pincode, weight, cod
        )
        return data.get("data", data) if isinstance(data, dict) else data
