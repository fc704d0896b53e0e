"""Payment link, webhook and callback verification endpoints."""

from fastapi import APIRouter, Header, Request, status

from agrimart.api.deps import CurrentUser, PaymentServiceDep
from agrimart.schemas.payment import (
    PaymentLinkCreate,
    PaymentLinkResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
    WebhookAck,
)

router = APIRouter()


@router.post("/links", response_model=PaymentLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_payment_link(
    data: PaymentLinkCreate, service: PaymentServiceDep, current_user: CurrentUser
):
    """Create a hosted payment link to pay for an order about to be placed."""
    return await service.create_payment_link(current_user, data)


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    service: PaymentServiceDep,
    x_razorpay_signature: str | None = Header(None),
):
    """Gateway webhook.

    The signature covers the raw body, so the body is read as bytes and
    never re-serialized before verification. Any error returns non-2xx and
    the gateway redelivers.
    """
    raw_body = await request.body()
    return await service.handle_webhook(raw_body, x_razorpay_signature)


@router.post("/verify", response_model=PaymentVerifyResponse)
async def verify_payment(
    data: PaymentVerifyRequest, service: PaymentServiceDep, current_user: CurrentUser
):
    """Callback verification for when the buyer returns before the webhook."""
    return await service.verify_payment(current_user, data.order_id)
