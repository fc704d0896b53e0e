"""Product schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class PriceSizeIn(BaseModel):
    """One size row of a seller's price/stock table."""

    size: str = Field(..., min_length=1, max_length=50)
    price: Decimal = Field(..., gt=0)
    discounted_price: Decimal = Field(..., gt=0)
    quantity: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_discount(self) -> "PriceSizeIn":
        if self.discounted_price > self.price:
            raise ValueError("discounted_price cannot exceed price")
        return self


class ProductCreate(BaseModel):
    """Schema for product creation request."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, max_length=100)
    image_url: str | None = Field(None, max_length=500)
    shop_name: str | None = Field(None, max_length=255)
    price_sizes: list[PriceSizeIn] = Field(..., min_length=1)


class ProductUpdate(BaseModel):
    """Schema for a seller editing a product they sell.

    Catalog fields are shared by every seller; ``shop_name`` and
    ``price_sizes`` replace only the editing seller's own offer.
    """

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, max_length=100)
    image_url: str | None = Field(None, max_length=500)
    shop_name: str | None = Field(None, max_length=255)
    price_sizes: list[PriceSizeIn] | None = Field(None, min_length=1)


class SellerOfferCreate(BaseModel):
    """Schema for a seller joining an existing product."""

    shop_name: str | None = Field(None, max_length=255)
    price_sizes: list[PriceSizeIn] = Field(..., min_length=1)


class PriceSizeResponse(BaseModel):
    size: str
    price: Decimal
    discounted_price: Decimal
    quantity: int

    model_config = {"from_attributes": True}


class SellerOfferResponse(BaseModel):
    seller_id: UUID | None
    shop_name: str | None = None
    price_sizes: list[PriceSizeResponse]


class ProductResponse(BaseModel):
    """Schema for product response."""

    product_id: UUID
    name: str
    description: str | None
    category: str | None
    image_url: str | None
    seller_id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class ProductDetailResponse(ProductResponse):
    offers: list[SellerOfferResponse]


class ProductListResponse(BaseModel):
    """Schema for product list response."""

    products: list[ProductResponse]
    total: int


class SellerProductResponse(BaseModel):
    """A product as listed in the seller's own catalog view."""

    product_id: UUID
    name: str
    category: str | None
    image_url: str | None
    shop_name: str | None
    stock: int
    price: Decimal | None


class SellerProductListResponse(BaseModel):
    products: list[SellerProductResponse]
    total: int
