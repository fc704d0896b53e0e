"""Pydantic schemas for request/response validation."""

from agrimart.schemas.address import AddressCreate, AddressResponse, AddressSnapshot, AddressUpdate
from agrimart.schemas.common import ErrorResponse, MessageResponse
from agrimart.schemas.order import OrderCreate, OrderEnvelope, OrderListResponse, OrderResponse
from agrimart.schemas.product import ProductCreate, ProductDetailResponse, ProductListResponse, ProductResponse
from agrimart.schemas.user import TokenResponse, UserLogin, UserRegister, UserResponse

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "TokenResponse",
    "ProductCreate",
    "ProductResponse",
    "ProductDetailResponse",
    "ProductListResponse",
    "AddressCreate",
    "AddressUpdate",
    "AddressResponse",
    "AddressSnapshot",
    "OrderCreate",
    "OrderResponse",
    "OrderEnvelope",
    "OrderListResponse",
    "MessageResponse",
    "ErrorResponse",
]
