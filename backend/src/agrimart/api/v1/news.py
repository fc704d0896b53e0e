"""News API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from agrimart.api.deps import AdminUser, DbSession
from agrimart.schemas.common import MessageResponse
from agrimart.schemas.news import NewsCreate, NewsListResponse, NewsResponse, NewsUpdate
from agrimart.services.news_service import NewsService

router = APIRouter()


@router.get("", response_model=NewsListResponse)
async def list_news(
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """Get news with pagination, newest first."""
    service = NewsService(db)
    news, total = await service.list_news(page=page, limit=limit)
    return NewsListResponse(news=news, total=total, page=page, limit=limit)


@router.get("/{news_id}", response_model=NewsResponse)
async def get_news(news_id: UUID, db: DbSession):
    service = NewsService(db)
    return await service.get(news_id)


@router.post("", response_model=NewsResponse, status_code=status.HTTP_201_CREATED)
async def create_news(data: NewsCreate, db: DbSession, admin: AdminUser):
    """Add a news article.

    Raises:
        409: Another article already has this link
    """
    service = NewsService(db)
    return await service.create(data)


@router.put("/{news_id}", response_model=NewsResponse)
async def update_news(news_id: UUID, data: NewsUpdate, db: DbSession, admin: AdminUser):
    service = NewsService(db)
    return await service.update(news_id, data)


@router.delete("/{news_id}", response_model=MessageResponse)
async def delete_news(news_id: UUID, db: DbSession, admin: AdminUser):
    service = NewsService(db)
    await service.delete(news_id)
    return MessageResponse(message="News deleted successfully")
