"""Government scheme schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class SchemeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str = ""
    source: str = Field(..., min_length=1, max_length=200)
    image_url: str | None = Field(None, max_length=500)
    link: str | None = Field(None, max_length=500)
    announced_at: datetime | None = None


class SchemeUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = None
    source: str | None = Field(None, min_length=1, max_length=200)
    image_url: str | None = Field(None, max_length=500)
    link: str | None = Field(None, max_length=500)
    announced_at: datetime | None = None


class SchemeResponse(BaseModel):
    scheme_id: UUID
    title: str
    description: str
    source: str
    image_url: str | None
    link: str | None
    announced_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class SchemeListResponse(BaseModel):
    """One page of schemes, newest announcement first."""

    schemes: list[SchemeResponse]
    total: int
    page: int
    pages: int
