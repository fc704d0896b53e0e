"""Government scheme API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from agrimart.api.deps import AdminUser, DbSession
from agrimart.schemas.common import MessageResponse
from agrimart.schemas.scheme import (
    SchemeCreate,
    SchemeListResponse,
    SchemeResponse,
    SchemeUpdate,
)
from agrimart.services.scheme_service import SchemeService

router = APIRouter()


@router.get("", response_model=SchemeListResponse)
async def list_schemes(
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """Get schemes with pagination."""
    service = SchemeService(db)
    schemes, total, pages = await service.list_schemes(page=page, limit=limit)
    return SchemeListResponse(schemes=schemes, total=total, page=page, pages=pages)


@router.get("/{scheme_id}", response_model=SchemeResponse)
async def get_scheme(scheme_id: UUID, db: DbSession):
    service = SchemeService(db)
    return await service.get(scheme_id)


@router.post("", response_model=SchemeResponse, status_code=status.HTTP_201_CREATED)
async def create_scheme(data: SchemeCreate, db: DbSession, admin: AdminUser):
    service = SchemeService(db)
    return await service.create(data)


@router.put("/{scheme_id}", response_model=SchemeResponse)
async def update_scheme(scheme_id: UUID, data: SchemeUpdate, db: DbSession, admin: AdminUser):
    service = SchemeService(db)
    return await service.update(scheme_id, data)


@router.delete("/{scheme_id}", response_model=MessageResponse)
async def delete_scheme(scheme_id: UUID, db: DbSession, admin: AdminUser):
    service = SchemeService(db)
    await service.delete(scheme_id)
    return MessageResponse(message="Scheme deleted successfully")
