"""Order schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from agrimart.models.enums import OrderStatus, PaymentMethod, ShipmentState
from agrimart.schemas.address import AddressSnapshot


class OrderCreate(BaseModel):
    """Checkout request.

    With ``product_id`` the order is a single-product purchase; without it the
    buyer's cart is checked out.
    """

    product_id: UUID | None = None
    seller_id: UUID | None = None
    size: str | None = Field(None, min_length=1, max_length=50)
    quantity: int | None = Field(None, gt=0)
    address_id: UUID
    payment_method: PaymentMethod
    payment_link_id: str | None = Field(None, max_length=64)
    payment_link_url: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_single_product_fields(self) -> "OrderCreate":
        if self.product_id is not None and (self.size is None or self.quantity is None):
            raise ValueError("size and quantity are required when product_id is given")
        return self


class OrderItemResponse(BaseModel):
    product_id: UUID
    seller_id: UUID
    product_name: str
    size: str
    unit_price: Decimal
    discounted_price: Decimal
    quantity: int

    model_config = {"from_attributes": True}


class ShipmentSummary(BaseModel):
    state: ShipmentState
    provider_order_id: str | None = None
    shipment_id: str | None = None
    awb_code: str | None = None
    courier_name: str | None = None
    provider_status: str | None = None
    pickup_location: str | None = None
    label_url: str | None = None
    last_error: str | None = None

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    """Schema for order response."""

    order_id: UUID
    user_id: UUID
    items: list[OrderItemResponse]
    total_amount: Decimal
    payment_method: str
    payment_status: str
    status: str
    shipping_address: AddressSnapshot
    payment_link_id: str | None
    payment_link_url: str | None
    payment_id: str | None
    stock_adjusted: bool
    shipment: ShipmentSummary
    created_at: datetime

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        shipment = order.shipment
        summary = (
            ShipmentSummary.model_validate(shipment)
            if shipment is not None
            else ShipmentSummary(state=ShipmentState.NONE)
        )
        return cls(
            order_id=order.order_id,
            user_id=order.user_id,
            items=[OrderItemResponse.model_validate(item) for item in order.items],
            total_amount=order.total_amount,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            status=order.status,
            shipping_address=AddressSnapshot(**order.shipping_address),
            payment_link_id=order.payment_link_id,
            payment_link_url=order.payment_link_url,
            payment_id=order.payment_id,
            stock_adjusted=order.stock_adjusted,
            shipment=summary,
            created_at=order.created_at,
        )


class OrderEnvelope(BaseModel):
    success: bool = True
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    """Schema for order list response."""

    orders: list[OrderResponse]
    total: int


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
