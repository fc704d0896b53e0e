"""News service for the storefront's agricultural news feed."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.exceptions import ConflictError, NotFoundError
from agrimart.models.news import News
from agrimart.schemas.news import NewsCreate, NewsUpdate

logger = logging.getLogger(__name__)

# Columns that cannot be cleared by an update
REQUIRED_FIELDS = {"title", "description", "source", "published_at"}


class NewsService:
    """Service class for news operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_news(self, page: int = 1, limit: int = 10) -> tuple[list[News], int]:
        """Get one page of news, newest first.

        Returns:
            Tuple of (news list, total count)
        """
        total = (await self.db.execute(select(func.count(News.news_id)))).scalar_one()
        result = await self.db.execute(
            select(News)
            .order_by(News.published_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get(self, news_id: UUID) -> News:
        news = await self.db.get(News, news_id)
        if news is None:
            raise NotFoundError("News not found")
        return news

    async def _save(self, news: News) -> News:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("News with this link already exists")
        await self.db.refresh(news)
        return news

    async def create(self, data: NewsCreate) -> News:
        values = data.model_dump(exclude_none=True)
        news = News(**values)
        self.db.add(news)
        news = await self._save(news)
        logger.info(f"News {news.news_id} added from {news.source}")
        return news

    async def update(self, news_id: UUID, data: NewsUpdate) -> News:
        news = await self.get(news_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in REQUIRED_FIELDS:
                continue
            setattr(news, field, value)
        return await self._save(news)

    async def delete(self, news_id: UUID) -> None:
        news = await self.get(news_id)
        await self.db.delete(news)
        await self.db.commit()
        logger.info(f"News {news_id} deleted")
