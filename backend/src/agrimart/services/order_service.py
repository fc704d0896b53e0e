"""Order service: order intake, queries and status transitions."""

import logging
from decimal import Decimal
from typing import NamedTuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    ServiceError,
    ValidationFailedError,
)
from agrimart.models.enums import NotificationType, OrderStatus, PaymentMethod, PaymentStatus
from agrimart.models.order import Order, OrderItem
from agrimart.models.user import User
from agrimart.schemas.order import OrderCreate
from agrimart.services.address_service import AddressService
from agrimart.services.analytics_service import AnalyticsService
from agrimart.services.cart_service import CartService
from agrimart.services.inventory_service import InventoryService
from agrimart.services.notification_service import NotificationService
from agrimart.services.razorpay_client import RazorpayClient, to_minor_units

logger = logging.getLogger(__name__)

# Statuses from which a buyer can no longer cancel
NON_CANCELLABLE = {
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.CANCELLED.value,
}


class RequestedLine(NamedTuple):
    product_id: UUID
    seller_id: UUID | None
    size: str
    quantity: int


class OrderService:
    """Service class for order operations."""

    def __init__(
        self,
        db: AsyncSession,
        analytics: AnalyticsService | None = None,
        gateway: RazorpayClient | None = None,
    ):
        self.db = db
        self.analytics = analytics
        self.gateway = gateway
        self.inventory = InventoryService(db)
        self.addresses = AddressService(db)
        self.carts = CartService(db)
        self.notifications = NotificationService(db)

    # ==================== Intake ====================

    async def _resolve_line(self, line: RequestedLine, from_cart: bool) -> OrderItem:
        """Validate one requested line against the current price/size table.

        Messages name the product in cart mode so the buyer can tell which
        cart line failed.
        """
        product = await self.inventory.get_product(line.product_id)
        if product is None:
            raise NotFoundError(
                "One or more products in your cart no longer exist."
                if from_cart
                else "Product not found"
            )

        if line.seller_id is not None and not await self.inventory.has_price_table(
            line.product_id, line.seller_id
        ):
            raise NotFoundError(
                f"Seller not linked to {product.name}" if from_cart else "Seller not linked to product"
            )

        row = await self.inventory.find_size(line.product_id, line.seller_id, line.size)
        if row is None:
            raise ValidationFailedError(
                f"Size {line.size} not available for {product.name}"
                if from_cart
                else "Size not available"
            )
        if row.quantity < line.quantity:
            raise InsufficientStockError(
                f"Insufficient stock for {product.name}. "
                f"Available: {row.quantity}, Requested: {line.quantity}"
                if from_cart
                else "Insufficient stock"
            )

        return OrderItem(
            product_id=product.product_id,
            seller_id=line.seller_id or product.seller_id,
            seller_scoped=line.seller_id is not None,
            product_name=product.name,
            size=line.size,
            unit_price=row.price,
            discounted_price=row.discounted_price,
            quantity=line.quantity,
        )

    async def _resolve_lines(self, lines: list[RequestedLine], from_cart: bool) -> list[OrderItem]:
        """Validate every line before anything is written.

        Raises the first failure, carrying the messages of all failing lines.
        """
        items: list[OrderItem] = []
        failures: list[ServiceError] = []
        for line in lines:
            try:
                items.append(await self._resolve_line(line, from_cart))
            except ServiceError as e:
                failures.append(e)
        if failures:
            first = failures[0]
            first.errors = [f.message for f in failures]
            raise first
        return items

    async def _link_in_use(self, payment_link_id: str) -> bool:
        result = await self.db.execute(
            select(Order.order_id).where(Order.payment_link_id == payment_link_id)
        )
        return result.scalar_one_or_none() is not None

    async def _check_payment_link(self, buyer: User, payment_link_id: str, total: Decimal) -> dict:
        """Make sure a payment link can pay for this order.

        The link must be unused, created for this buyer and for exactly the
        order total.

        Returns:
            Payment-link entity fetched from the gateway

        Raises:
            ConflictError: Link already attached to another order
            ValidationFailedError: Link belongs to someone else or amount differs
        """
        if self.gateway is None:
            raise ValidationFailedError("Online payments are not available")
        if await self._link_in_use(payment_link_id):
            raise ConflictError("Payment link is already used by another order")
        # Free the pooled connection before the gateway call
        await self.db.commit()

        link = await self.gateway.fetch_payment_link(payment_link_id)
        owner = (link.get("notes") or {}).get("user_id")
        if owner != str(buyer.user_id):
            logger.warning(
                f"Payment link {payment_link_id} does not belong to buyer {buyer.user_id}"
            )
            raise ValidationFailedError("Payment link does not belong to this buyer")
        if link.get("amount") != to_minor_units(total):
            raise ValidationFailedError(
                f"Payment link amount does not match order total of ₹{total}"
            )
        return link

    async def create_order(self, buyer: User, data: OrderCreate) -> Order:
        """Create an order for a single product or the buyer's cart.

        Args:
            buyer: Buying user
            data: Checkout request

        Returns:
            Persisted order with items loaded

        Raises:
            NotFoundError: Product, seller table or address missing
            ValidationFailedError: Size unavailable, empty cart, missing payment link
            InsufficientStockError: Requested quantity above available stock
            ForbiddenError: Address belongs to another user
        """
        if data.product_id is not None:
            lines = [RequestedLine(data.product_id, data.seller_id, data.size, data.quantity)]
            from_cart = False
        else:
            cart = await self.carts.get_cart(buyer.user_id)
            if cart is None or not cart.items:
                raise ValidationFailedError(
                    "Cart is empty. Please add items to your cart before placing an order."
                )
            lines = [
                RequestedLine(i.product_id, i.seller_id, i.size, i.quantity) for i in cart.items
            ]
            from_cart = True

        return await self.place_order(
            buyer,
            lines,
            address_id=data.address_id,
            payment_method=data.payment_method,
            payment_link_id=data.payment_link_id,
            payment_link_url=data.payment_link_url,
            from_cart=from_cart,
        )

    async def place_order(
        self,
        buyer: User,
        lines: list[RequestedLine],
        *,
        address_id: UUID,
        payment_method: PaymentMethod,
        payment_link_id: str | None = None,
        payment_link_url: str | None = None,
        from_cart: bool = False,
    ) -> Order:
        """Validate lines and persist exactly one order."""
        items = await self._resolve_lines(lines, from_cart)

        if payment_method == PaymentMethod.ONLINE and not payment_link_id:
            raise ValidationFailedError("payment_link_id is required for online payments")

        address = await self.addresses.get_owned(buyer.user_id, address_id)
        total = sum((item.line_total for item in items), Decimal("0"))

        snapshot = address.snapshot()

        is_cod = payment_method == PaymentMethod.COD
        if not is_cod:
            link = await self._check_payment_link(buyer, payment_link_id, total)
            payment_link_url = payment_link_url or link.get("short_url")

        order = Order(
            user_id=buyer.user_id,
            items=items,
            total_amount=total,
            payment_method=payment_method.value,
            payment_status=PaymentStatus.PENDING.value,
            status=OrderStatus.PROCESSING.value if is_cod else OrderStatus.PENDING.value,
            address_id=address_id,
            shipping_address=snapshot,
            payment_link_id=payment_link_id,
            payment_link_url=payment_link_url,
            stock_adjusted=False,
        )
        self.db.add(order)

        # Online carts are kept until the payment succeeds
        if is_cod and from_cart:
            await self.carts.clear(buyer.user_id)

        try:
            await self.db.commit()
        except IntegrityError:
            # Two checkouts raced on the same payment link
            await self.db.rollback()
            raise ConflictError("Payment link is already used by another order")
        order = await self.get_by_id(order.order_id)
        logger.info(
            f"Order {order.order_id} created: {payment_method.value}, "
            f"{len(items)} items, total {total}"
        )

        if is_cod:
            await self.notifications.notify(
                buyer.user_id,
                NotificationType.ORDER_PLACED,
                "Order Placed Successfully!",
                f"Your order of ₹{total} has been placed successfully. Order ID: {order.order_id}",
                order_id=order.order_id,
                data={
                    "amount": str(total),
                    "item_count": len(items),
                    "payment_method": payment_method.value,
                },
            )
        if self.analytics:
            await self.analytics.invalidate(order.seller_ids)
        return order

    # ==================== Queries ====================

    async def get_by_id(self, order_id: UUID, lock: bool = False) -> Order | None:
        """Get order by ID.

        Args:
            order_id: Order UUID
            lock: Take a row lock on the order (SELECT ... FOR UPDATE)

        Returns:
            Order or None if not found
        """
        query = (
            select(Order)
            .where(Order.order_id == order_id)
            .execution_options(populate_existing=True)
        )
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_for_user(self, user: User, order_id: UUID) -> Order:
        """Get an order visible to the buyer, one of its sellers, or an admin.

        Raises:
            NotFoundError: Order does not exist
            ForbiddenError: User has no part in the order
        """
        order = await self.get_by_id(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        if not (order.user_id == user.user_id or user.is_admin or order.has_seller(user.user_id)):
            raise ForbiddenError("You are not authorized to view this order")
        return order

    async def get_user_orders(
        self, user_id: UUID, skip: int = 0, limit: int = 100
    ) -> tuple[list[Order], int]:
        """Get orders for a specific buyer, newest first.

        Args:
            user_id: User UUID
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (orders list, total count)
        """
        count_result = await self.db.execute(
            select(func.count(Order.order_id)).where(Order.user_id == user_id)
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        orders = list(result.scalars().all())

        return orders, total

    async def get_seller_orders(
        self, seller_id: UUID, skip: int = 0, limit: int = 100
    ) -> tuple[list[Order], int]:
        """Get orders containing at least one line sold by the seller."""
        has_line = Order.items.any(OrderItem.seller_id == seller_id)

        count_result = await self.db.execute(select(func.count(Order.order_id)).where(has_line))
        total = count_result.scalar_one()

        result = await self.db.execute(
            select(Order)
            .where(has_line)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    # ==================== Transitions ====================

    async def update_status(self, seller: User, order_id: UUID, status: OrderStatus) -> Order:
        """Seller-driven status change of an order they have items in.

        Raises:
            NotFoundError: Order does not exist
            ForbiddenError: Seller has no line in the order
        """
        order = await self.get_by_id(order_id, lock=True)
        if order is None:
            raise NotFoundError("Order not found")
        if not (seller.is_admin or order.has_seller(seller.user_id)):
            raise ForbiddenError("You are not authorized to update this order")

        order.status = status.value
        await self.db.commit()
        order = await self.get_by_id(order_id)
        logger.info(f"Order {order_id} status set to {status.value} by {seller.user_id}")

        await self.notifications.notify(
            order.user_id,
            NotificationType.ORDER_STATUS_UPDATED,
            "Order Status Updated",
            f"Your order #{str(order.order_id)[-8:]} is now {status.value}",
            order_id=order.order_id,
            data={"status": status.value},
        )
        if self.analytics:
            await self.analytics.invalidate({seller.user_id})
        return order

    async def cancel_order(self, buyer: User, order_id: UUID) -> Order:
        """Buyer cancellation before the order ships.

        Stock is not restored: it is only deducted at payment confirmation,
        and a paid order that is cancelled is handled as a refund offline.

        Raises:
            NotFoundError: Order does not exist
            ForbiddenError: Order belongs to someone else
            ConflictError: Order already shipped, delivered, cancelled or has a live shipment
        """
        order = await self.get_by_id(order_id, lock=True)
        if order is None:
            raise NotFoundError("Order not found")
        if order.user_id != buyer.user_id:
            raise ForbiddenError("You are not authorized to cancel this order")
        if order.status in NON_CANCELLABLE:
            raise ConflictError(f"Order cannot be cancelled once it is {order.status}")
        if order.shipment is not None and order.shipment.is_live:
            raise ConflictError("Order has an active shipment; cancel the shipment instead")

        order.status = OrderStatus.CANCELLED.value
        await self.db.commit()
        order = await self.get_by_id(order_id)
        logger.info(f"Order {order_id} cancelled by buyer")

        await self.notifications.notify(
            order.user_id,
            NotificationType.ORDER_CANCELLED,
            "Order Cancelled",
            f"Your order #{str(order.order_id)[-8:]} has been cancelled.",
            order_id=order.order_id,
        )
        if self.analytics:
            await self.analytics.invalidate(order.seller_ids)
        return order
