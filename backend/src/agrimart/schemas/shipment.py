"""Shipment schemas."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from agrimart.models.enums import PaymentMethod
from agrimart.schemas.order import OrderResponse, ShipmentSummary


class CheckoutItem(BaseModel):
    product_id: UUID
    seller_id: UUID | None = None
    size: str = Field(..., min_length=1, max_length=50)
    quantity: int = Field(..., gt=0)


class ShippingCheckoutRequest(BaseModel):
    """Dedicated shipping checkout: order intake plus immediate shipment creation."""

    items: list[CheckoutItem] = Field(..., min_length=1)
    address_id: UUID
    payment_method: PaymentMethod = PaymentMethod.COD
    payment_link_id: str | None = Field(None, max_length=64)


class CreateShipmentRequest(BaseModel):
    order_id: UUID


class AssignAwbRequest(BaseModel):
    order_id: UUID
    courier_id: int = Field(..., gt=0)


class LabelRequest(BaseModel):
    order_id: UUID


class ServiceabilityRequest(BaseModel):
    delivery_pincode: str = Field(..., pattern=r"^\d{6}$")
    weight: float = Field(1.0, gt=0)
    cod: bool = False


class ShipmentResponse(BaseModel):
    success: bool = True
    message: str
    order_id: UUID
    shipment: ShipmentSummary


class ShipmentOrderListResponse(BaseModel):
    success: bool = True
    count: int
    orders: list[OrderResponse]


class ProviderDataResponse(BaseModel):
    success: bool = True
    message: str
    data: Any
