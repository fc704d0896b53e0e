"""Cart schemas."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class CartItemAdd(BaseModel):
    product_id: UUID
    seller_id: UUID
    size: str = Field(..., min_length=1, max_length=50)
    quantity: int = Field(..., gt=0)


class CartItemResponse(BaseModel):
    cart_item_id: UUID
    product_id: UUID
    product_name: str
    seller_id: UUID | None
    size: str
    quantity: int
    unit_price: Decimal | None = None
    discounted_price: Decimal | None = None


class CartResponse(BaseModel):
    items: list[CartItemResponse]
    total_price: Decimal
    total_discounted_price: Decimal
