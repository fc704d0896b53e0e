"""Payment service: payment links, webhook routing and payment confirmation.

The webhook may be delivered more than once and may race the buyer's
callback verification. Both paths end in ``apply_link_status``, which locks
the order row and re-checks the idempotency guard before doing anything, so
whichever arrives first performs the transition and the rest acknowledge.
"""

import json
import logging
from typing import Any, NamedTuple
from uuid import UUID

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.config import settings
from agrimart.core.exceptions import (
    ForbiddenError,
    InsufficientStockError,
    InvalidSignatureError,
    NotFoundError,
    StockResolutionError,
    ValidationFailedError,
)
from agrimart.middleware.metrics import record_reconciliation, record_webhook
from agrimart.models.enums import NotificationType, OrderStatus, PaymentStatus
from agrimart.models.order import Order
from agrimart.models.user import User
from agrimart.schemas.payment import PaymentLinkCreate, PaymentLinkResponse, PaymentVerifyResponse
from agrimart.services.address_service import AddressService
from agrimart.services.analytics_service import AnalyticsService
from agrimart.services.cart_service import CartService
from agrimart.services.inventory_service import InventoryService
from agrimart.services.notification_service import NotificationService
from agrimart.services.order_service import OrderService
from agrimart.services.razorpay_client import (
    FAILED_LINK_STATUSES,
    PAID_LINK_STATUS,
    RazorpayClient,
    to_minor_units,
    verify_webhook_signature,
)
from agrimart.services.redis_service import RedisService

logger = logging.getLogger(__name__)


def is_settled(order: Order) -> bool:
    """True once the order must not be touched by payment events again."""
    return (
        order.payment_status == PaymentStatus.COMPLETED.value
        or order.status == OrderStatus.CANCELLED.value
    )


class LinkEvent(NamedTuple):
    link_id: str
    status: str
    payment_id: str | None
    amount_paid: int | None
    owner_id: str | None


def extract_link_event(payload: dict[str, Any]) -> LinkEvent | None:
    """Pull the payment-link fields out of a webhook payload.

    Returns:
        LinkEvent, or None when the event carries no payment-link entity
    """
    body = payload.get("payload") or {}
    entity = (body.get("payment_link") or {}).get("entity") or {}
    link_id = entity.get("id")
    status = entity.get("status")
    if not link_id or not status:
        return None
    payment_id = ((body.get("payment") or {}).get("entity") or {}).get("id")
    return LinkEvent(
        link_id,
        status,
        payment_id,
        entity.get("amount_paid"),
        (entity.get("notes") or {}).get("user_id"),
    )


def payment_mismatch(order: Order, amount_paid: int | None, owner_id: str | None) -> str | None:
    """Reason a paid link cannot settle this order, or None when it can.

    Amounts are compared in paise.
    """
    expected = to_minor_units(order.total_amount)
    if amount_paid != expected:
        return f"amount paid {amount_paid} does not match order total {expected}"
    if owner_id != str(order.user_id):
        return f"payment link belongs to {owner_id}, not the order's buyer"
    return None


def latest_payment_id(link: dict[str, Any]) -> str | None:
    """Gateway payment id from a fetched payment-link entity."""
    payments = link.get("payments") or []
    for payment in reversed(payments):
        if isinstance(payment, dict) and payment.get("payment_id"):
            return payment["payment_id"]
    return None


class PaymentService:
    """Service class for payment operations."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: RazorpayClient,
        redis_service: RedisService | None = None,
        analytics: AnalyticsService | None = None,
        webhook_secret: str | None = None,
    ):
        self.db = db
        self.gateway = gateway
        self.redis_service = redis_service
        self.analytics = analytics
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.RAZORPAY_WEBHOOK_SECRET
        )
        self.orders = OrderService(db, analytics, gateway)
        self.inventory = InventoryService(db)
        self.carts = CartService(db)
        self.addresses = AddressService(db)
        self.notifications = NotificationService(db)

    # ==================== Payment Links ====================

    async def create_payment_link(self, buyer: User, data: PaymentLinkCreate) -> PaymentLinkResponse:
        """Create a hosted payment link before the order is placed.

        The returned link id is then passed to order intake, which stores it
        on the order so the webhook can find the order again.
        """
        address = await self.addresses.get_owned(buyer.user_id, data.address_id)
        customer = {"name": buyer.name, "email": buyer.email}
        if address.mobile:
            customer["contact"] = address.mobile

        link = await self.gateway.create_payment_link(
            amount=data.amount,
            customer=customer,
            notes={"user_id": str(buyer.user_id), "address_id": str(address.address_id)},
            description=data.description or "AgriMart order payment",
            callback_url=settings.PAYMENT_CALLBACK_URL,
            currency=settings.PAYMENT_CURRENCY,
        )
        return PaymentLinkResponse(
            payment_link_id=link["id"],
            payment_link_url=link["short_url"],
            status=link.get("status", "created"),
        )

    # ==================== Webhook ====================

    async def handle_webhook(self, raw_body: bytes, signature: str | None) -> dict[str, bool]:
        """Verify, parse and route a gateway webhook.

        Args:
            raw_body: Request body exactly as received
            signature: Value of the signature header

        Returns:
            ``{"received": True}`` acknowledgement

        Raises:
            InvalidSignatureError: Signature missing or wrong
            ValidationFailedError: Body is not JSON
        """
        if not verify_webhook_signature(raw_body, signature, self.webhook_secret):
            logger.warning("Rejected payment webhook with invalid signature")
            record_webhook("invalid_signature")
            raise InvalidSignatureError("Invalid webhook signature")

        try:
            payload = json.loads(raw_body)
        except ValueError:
            record_webhook("error")
            raise ValidationFailedError("Invalid webhook payload")

        if not isinstance(payload, dict):
            record_webhook("error")
            raise ValidationFailedError("Invalid webhook payload")

        event = extract_link_event(payload)
        if event is None:
            logger.info(f"Ignoring webhook event {payload.get('event')}")
            record_webhook("ignored")
            return {"received": True}

        link_id, status, payment_id, amount_paid, owner_id = event
        try:
            outcome = await self.apply_link_status(
                link_id, status, payment_id, amount_paid=amount_paid, owner_id=owner_id
            )
        except Exception:
            record_webhook("error")
            raise
        record_webhook(outcome)
        logger.info(f"Webhook for payment link {link_id} ({status}) handled: {outcome}")
        return {"received": True}

    async def apply_link_status(
        self,
        link_id: str,
        status: str,
        payment_id: str | None,
        *,
        amount_paid: int | None = None,
        owner_id: str | None = None,
    ) -> str:
        """Route a payment-link status to the matching handler.

        Args:
            link_id: Gateway payment-link id
            status: Payment-link status
            payment_id: Gateway payment id, when known
            amount_paid: Amount collected on the link, in paise
            owner_id: Buyer id recorded in the link notes

        Returns:
            Outcome label: paid, failed, status, duplicate, mismatch,
            in_progress or unknown_order
        """
        result = await self.db.execute(select(Order.order_id).where(Order.payment_link_id == link_id))
        order_id = result.scalar_one_or_none()
        if order_id is None:
            logger.warning(f"No order found for payment link {link_id}")
            return "unknown_order"

        owner = await self._acquire_lock(order_id)
        if owner is False:
            logger.info(f"Order {order_id} is already being processed, acknowledging")
            return "in_progress"
        try:
            if status == PAID_LINK_STATUS:
                return await self._handle_success(order_id, payment_id, amount_paid, owner_id)
            if status in FAILED_LINK_STATUSES:
                return await self._handle_failure(order_id, status)
            return await self._record_status(order_id, status)
        finally:
            if owner:
                await self._release_lock(order_id, owner)

    async def _acquire_lock(self, order_id: UUID) -> str | bool | None:
        """Take the Redis processing lock.

        Returns:
            Owner id when held, False when someone else holds it, None when
            Redis is unavailable (the row lock still protects correctness)
        """
        if self.redis_service is None:
            return None
        try:
            acquired, owner = await self.redis_service.acquire_order_lock(str(order_id))
        except RedisError as e:
            logger.warning(f"Order lock unavailable for {order_id}: {e}")
            return None
        return owner if acquired else False

    async def _release_lock(self, order_id: UUID, owner: str) -> None:
        try:
            await self.redis_service.release_order_lock(str(order_id), owner)
        except RedisError as e:
            logger.warning(f"Failed to release order lock for {order_id}: {e}")

    async def _handle_success(
        self,
        order_id: UUID,
        payment_id: str | None,
        amount_paid: int | None,
        owner_id: str | None,
    ) -> str:
        """Confirm payment and deduct stock in one transaction.

        A link that paid the wrong amount or belongs to another buyer leaves
        the order untouched.
        """
        try:
            order = await self.orders.get_by_id(order_id, lock=True)
            if is_settled(order):
                await self.db.rollback()
                return "duplicate"

            reason = payment_mismatch(order, amount_paid, owner_id)
            if reason:
                await self.db.rollback()
                logger.error(f"Refusing to confirm order {order_id}: {reason}")
                return "mismatch"

            try:
                await self.inventory.reconcile_order(order)
            except (StockResolutionError, InsufficientStockError) as e:
                record_reconciliation(
                    "insufficient" if isinstance(e, InsufficientStockError) else "unresolved"
                )
                logger.error(f"Stock reconciliation aborted for order {order_id}: {e.message}")
                raise

            order.payment_status = PaymentStatus.COMPLETED.value
            order.status = OrderStatus.PROCESSING.value
            order.payment_link_status = PAID_LINK_STATUS
            if payment_id:
                order.payment_id = payment_id
            await self.carts.clear(order.user_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        record_reconciliation("success")
        logger.info(f"Payment confirmed for order {order_id}, stock deducted")

        await self.notifications.notify(
            order.user_id,
            NotificationType.PAYMENT_SUCCESS,
            "Payment Successful!",
            f"Your payment of ₹{order.total_amount} was successful. Your order is being processed.",
            order_id=order.order_id,
            data={"amount": str(order.total_amount), "payment_id": order.payment_id},
        )
        if self.analytics:
            await self.analytics.invalidate(order.seller_ids)
        return "paid"

    async def _handle_failure(self, order_id: UUID, status: str) -> str:
        try:
            order = await self.orders.get_by_id(order_id, lock=True)
            if is_settled(order):
                await self.db.rollback()
                return "duplicate"

            order.payment_status = PaymentStatus.FAILED.value
            order.status = OrderStatus.CANCELLED.value
            order.payment_link_status = status
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Payment {status} for order {order_id}, order cancelled")
        await self.notifications.notify(
            order.user_id,
            NotificationType.PAYMENT_FAILED,
            "Payment Failed",
            f"Your payment of ₹{order.total_amount} was not completed ({status}). "
            "The order has been cancelled.",
            order_id=order.order_id,
            data={"amount": str(order.total_amount), "status": status},
        )
        return "failed"

    async def _record_status(self, order_id: UUID, status: str) -> str:
        try:
            order = await self.orders.get_by_id(order_id, lock=True)
            if is_settled(order):
                await self.db.rollback()
                return "duplicate"
            order.payment_link_status = status
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return "status"

    # ==================== Callback Verification ====================

    async def verify_payment(self, buyer: User, order_id: UUID) -> PaymentVerifyResponse:
        """Re-fetch the payment link and apply its status if the webhook has not.

        Raises:
            NotFoundError: Order does not exist
            ForbiddenError: Order belongs to someone else
            ValidationFailedError: Order has no payment link
        """
        order = await self.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        if order.user_id != buyer.user_id:
            raise ForbiddenError("You are not authorized to verify this order")
        if not order.payment_link_id:
            raise ValidationFailedError("Order has no payment link")

        if not is_settled(order):
            # Free the pooled connection before the gateway call
            await self.db.commit()
            link = await self.gateway.fetch_payment_link(order.payment_link_id)
            status = link.get("status") or ""
            outcome = await self.apply_link_status(
                order.payment_link_id,
                status,
                latest_payment_id(link),
                amount_paid=link.get("amount_paid"),
                owner_id=(link.get("notes") or {}).get("user_id"),
            )
            logger.info(f"Callback verification for order {order_id} ({status}): {outcome}")
            order = await self.orders.get_by_id(order_id)

        if order.payment_status == PaymentStatus.COMPLETED.value:
            message = "Payment verified successfully"
        elif order.payment_status == PaymentStatus.FAILED.value:
            message = "Payment failed"
        else:
            message = "Payment is still pending"
        return PaymentVerifyResponse(
            success=order.payment_status != PaymentStatus.FAILED.value,
            message=message,
            payment_status=order.payment_status,
            order_status=order.status,
        )
