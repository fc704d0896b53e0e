"""Address API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from agrimart.api.deps import CurrentUser, DbSession
from agrimart.schemas.address import AddressCreate, AddressResponse, AddressUpdate
from agrimart.schemas.common import MessageResponse
from agrimart.services.address_service import AddressService

router = APIRouter()


@router.get("", response_model=list[AddressResponse])
async def list_addresses(db: DbSession, current_user: CurrentUser):
    service = AddressService(db)
    return await service.list_for_user(current_user.user_id)


@router.post("", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
async def create_address(data: AddressCreate, db: DbSession, current_user: CurrentUser):
    service = AddressService(db)
    return await service.create(current_user.user_id, data)


@router.put("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: UUID, data: AddressUpdate, db: DbSession, current_user: CurrentUser
):
    """Update an address. Orders already placed keep their snapshot."""
    service = AddressService(db)
    return await service.update(current_user.user_id, address_id, data)


@router.delete("/{address_id}", response_model=MessageResponse)
async def delete_address(address_id: UUID, db: DbSession, current_user: CurrentUser):
    service = AddressService(db)
    await service.delete(current_user.user_id, address_id)
    return MessageResponse(message="Address deleted")
