"""Address schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class AddressCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    mobile: str = Field(..., pattern=r"^\+?\d{10,13}$")
    street_address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., pattern=r"^\d{6}$")


class AddressUpdate(BaseModel):
    """Partial update; omitted fields keep their value."""

    name: str | None = Field(None, min_length=1, max_length=100)
    mobile: str | None = Field(None, pattern=r"^\+?\d{10,13}$")
    street_address: str | None = Field(None, min_length=1, max_length=500)
    city: str | None = Field(None, min_length=1, max_length=100)
    state: str | None = Field(None, min_length=1, max_length=100)
    zip_code: str | None = Field(None, pattern=r"^\d{6}$")


class AddressResponse(BaseModel):
    address_id: UUID
    name: str
    mobile: str
    street_address: str
    city: str
    state: str
    zip_code: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AddressSnapshot(BaseModel):
    """Denormalised address stored on an order."""

    name: str
    mobile: str
    street_address: str
    city: str
    state: str
    zip_code: str
