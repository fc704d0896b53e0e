"""Payment link and webhook schemas."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class PaymentLinkCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    address_id: UUID
    description: str | None = Field(None, max_length=255)


class PaymentLinkResponse(BaseModel):
    success: bool = True
    payment_link_id: str
    payment_link_url: str
    status: str


class PaymentVerifyRequest(BaseModel):
    order_id: UUID


class PaymentVerifyResponse(BaseModel):
    success: bool = True
    message: str
    payment_status: str
    order_status: str


class WebhookAck(BaseModel):
    received: bool = True
