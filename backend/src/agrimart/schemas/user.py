"""User schemas for request/response validation."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class UserRegister(BaseModel):
    """Schema for user registration request."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=20)
    role: Literal["buyer", "seller"] = "buyer"


class UserLogin(BaseModel):
    """Schema for user login request."""

    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    """Schema for a profile update; omitted fields keep their value.

    When both ``first_name`` and ``last_name`` are given they replace
    ``name``.
    """

    name: str | None = Field(None, min_length=1, max_length=100)
    first_name: str | None = Field(None, min_length=1, max_length=50)
    last_name: str | None = Field(None, min_length=1, max_length=49)
    phone: str | None = Field(None, max_length=20)


class UserResponse(BaseModel):
    """Schema for user response."""

    user_id: UUID
    email: str
    name: str
    phone: str | None
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """Schema for login token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
