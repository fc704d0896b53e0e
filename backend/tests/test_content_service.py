"""Tests for the news feed and government scheme listings."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from agrimart.core.exceptions import ConflictError, NotFoundError
from agrimart.schemas.news import NewsCreate, NewsUpdate
from agrimart.schemas.scheme import SchemeCreate, SchemeUpdate
from agrimart.services.news_service import NewsService
from agrimart.services.scheme_service import SchemeService


def page_results(total: int, rows: list) -> list[MagicMock]:
    """Results for a count query followed by a page query."""
    count = MagicMock()
    count.scalar_one = MagicMock(return_value=total)
    page = MagicMock()
    page.scalars.return_value.all.return_value = rows
    return [count, page]


class TestNewsService:
    @pytest.mark.asyncio
    async def test_list_pages(self, mock_db):
        articles = [MagicMock(), MagicMock()]
        mock_db.execute = AsyncMock(side_effect=page_results(12, articles))

        news, total = await NewsService(mock_db).list_news(page=2, limit=10)

        assert news == articles
        assert total == 12
        query = mock_db.execute.await_args_list[1].args[0]
        assert query._offset_clause.value == 10

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_db):
        mock_db.get = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await NewsService(mock_db).get(uuid4())

    @pytest.mark.asyncio
    async def test_create_defaults_publish_date(self, mock_db):
        data = NewsCreate(title="Monsoon arrives early", source="IMD")

        news = await NewsService(mock_db).create(data)

        mock_db.add.assert_called_once_with(news)
        assert news.title == "Monsoon arrives early"
        assert news.published_at is None
        mock_db.commit.assert_awaited_once()
        mock_db.refresh.assert_awaited_once_with(news)

    @pytest.mark.asyncio
    async def test_duplicate_link_conflicts(self, mock_db):
        mock_db.commit = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("dup")))
        data = NewsCreate(
            title="Wheat MSP raised",
            source="PIB",
            link="https://pib.gov.in/msp",
            published_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
        )

        with pytest.raises(ConflictError):
            await NewsService(mock_db).create(data)

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_keeps_required_fields(self, mock_db):
        """Test null clears optional columns but never the title."""
        news = MagicMock(title="Old title", image_url="https://img/1.png", source="PIB")
        mock_db.get = AsyncMock(return_value=news)

        await NewsService(mock_db).update(
            uuid4(), NewsUpdate(title=None, image_url=None, source="Krishi Jagran")
        )

        assert news.title == "Old title"
        assert news.image_url is None
        assert news.source == "Krishi Jagran"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete(self, mock_db):
        news = MagicMock()
        mock_db.get = AsyncMock(return_value=news)

        await NewsService(mock_db).delete(uuid4())

        mock_db.delete.assert_awaited_once_with(news)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_missing(self, mock_db):
        mock_db.get = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await NewsService(mock_db).delete(uuid4())

        mock_db.delete.assert_not_awaited()


class TestSchemeService:
    @pytest.mark.asyncio
    async def test_page_count(self, mock_db):
        mock_db.execute = AsyncMock(side_effect=page_results(21, [MagicMock()]))

        schemes, total, pages = await SchemeService(mock_db).list_schemes(page=3, limit=10)

        assert len(schemes) == 1
        assert total == 21
        assert pages == 3

    @pytest.mark.asyncio
    async def test_empty_listing(self, mock_db):
        mock_db.execute = AsyncMock(side_effect=page_results(0, []))

        schemes, total, pages = await SchemeService(mock_db).list_schemes()

        assert schemes == []
        assert pages == 0

    @pytest.mark.asyncio
    async def test_create(self, mock_db):
        data = SchemeCreate(
            title="PM-KISAN",
            description="Rs. 6000 per year in three installments",
            source="Ministry of Agriculture & Farmers Welfare",
        )

        scheme = await SchemeService(mock_db).create(data)

        assert scheme.source == "Ministry of Agriculture & Farmers Welfare"
        mock_db.add.assert_called_once_with(scheme)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_clears_link(self, mock_db):
        scheme = MagicMock(title="KCC", link="https://old")
        mock_db.get = AsyncMock(return_value=scheme)

        await SchemeService(mock_db).update(uuid4(), SchemeUpdate(link=None, description=None))

        assert scheme.link is None
        assert scheme.description is not None

    @pytest.mark.asyncio
    async def test_update_missing(self, mock_db):
        mock_db.get = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await SchemeService(mock_db).update(uuid4(), SchemeUpdate(title="x"))

        mock_db.commit.assert_not_awaited()
