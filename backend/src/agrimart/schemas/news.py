"""News article schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class NewsCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str = ""
    source: str = Field(..., min_length=1, max_length=200)
    image_url: str | None = Field(None, max_length=500)
    link: str | None = Field(None, max_length=500)
    published_at: datetime | None = None


class NewsUpdate(BaseModel):
    """Partial update; omitted fields keep their value."""

    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = None
    source: str | None = Field(None, min_length=1, max_length=200)
    image_url: str | None = Field(None, max_length=500)
    link: str | None = Field(None, max_length=500)
    published_at: datetime | None = None


class NewsResponse(BaseModel):
    news_id: UUID
    title: str
    description: str
    source: str
    image_url: str | None
    link: str | None
    published_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class NewsListResponse(BaseModel):
    news: list[NewsResponse]
    total: int
    page: int
    limit: int
