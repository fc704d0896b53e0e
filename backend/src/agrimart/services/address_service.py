"""Address service for buyer shipping destinations."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.exceptions import ForbiddenError, NotFoundError
from agrimart.models.address import Address
from agrimart.schemas.address import AddressCreate, AddressUpdate


class AddressService:
    """Service class for address operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, address_id: UUID) -> Address | None:
        result = await self.db.execute(select(Address).where(Address.address_id == address_id))
        return result.scalar_one_or_none()

    async def get_owned(self, user_id: UUID, address_id: UUID) -> Address:
        """Get an address that must belong to the user.

        Raises:
            NotFoundError: Address does not exist
            ForbiddenError: Address belongs to someone else
        """
        address = await self.get_by_id(address_id)
        if address is None:
            raise NotFoundError("Address not found")
        if address.user_id != user_id:
            raise ForbiddenError("Address does not belong to this user")
        return address

    async def list_for_user(self, user_id: UUID) -> list[Address]:
        result = await self.db.execute(
            select(Address).where(Address.user_id == user_id).order_by(Address.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(self, user_id: UUID, data: AddressCreate) -> Address:
        address = Address(user_id=user_id, **data.model_dump())
        self.db.add(address)
        await self.db.commit()
        await self.db.refresh(address)
        return address

    async def update(self, user_id: UUID, address_id: UUID, data: AddressUpdate) -> Address:
        address = await self.get_owned(user_id, address_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(address, field, value)
        await self.db.commit()
        await self.db.refresh(address)
        return address

    async def delete(self, user_id: UUID, address_id: UUID) -> None:
        """Delete an address; orders keep their own snapshot."""
        address = await self.get_owned(user_id, address_id)
        await self.db.delete(address)
        await self.db.commit()
