"""Scheme service for the government schemes listing."""

import logging
import math
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.exceptions import NotFoundError
from agrimart.models.scheme import Scheme
from agrimart.schemas.scheme import SchemeCreate, SchemeUpdate

logger = logging.getLogger(__name__)


class SchemeService:
    """Service class for scheme operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_schemes(
        self, page: int = 1, limit: int = 10
    ) -> tuple[list[Scheme], int, int]:
        """Get one page of schemes, latest announcement first.

        Args:
            page: 1-based page number
            limit: Page size

        Returns:
            Tuple of (schemes, total count, page count)
        """
        total = (await self.db.execute(select(func.count(Scheme.scheme_id)))).scalar_one()
        result = await self.db.execute(
            select(Scheme)
            .order_by(Scheme.announced_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        schemes = list(result.scalars().all())
        logger.debug(f"Schemes page {page}: {len(schemes)} of {total}")
        return schemes, total, math.ceil(total / limit)

    async def get(self, scheme_id: UUID) -> Scheme:
        scheme = await self.db.get(Scheme, scheme_id)
        if scheme is None:
            raise NotFoundError("Scheme not found")
        return scheme

    async def create(self, data: SchemeCreate) -> Scheme:
        scheme = Scheme(**data.model_dump(exclude_none=True))
        self.db.add(scheme)
        await self.db.commit()
        await self.db.refresh(scheme)
        logger.info(f"Scheme {scheme.scheme_id} added: {scheme.title}")
        return scheme

    async def update(self, scheme_id: UUID, data: SchemeUpdate) -> Scheme:
        """Apply the fields present in ``data``.

        ``None`` clears ``image_url`` and ``link`` but is ignored for the
        required columns.
        """
        scheme = await self.get(scheme_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field not in ("image_url", "link"):
                continue
            setattr(scheme, field, value)
        await self.db.commit()
        await self.db.refresh(scheme)
        return scheme

    async def delete(self, scheme_id: UUID) -> None:
        scheme = await self.get(scheme_id)
        await self.db.delete(scheme)
        await self.db.commit()
        logger.info(f"Scheme {scheme_id} deleted")
