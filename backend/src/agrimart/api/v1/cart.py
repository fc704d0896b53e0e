"""Cart API endpoints."""

from uuid import UUID

from fastapi import APIRouter

from agrimart.api.deps import CurrentUser, DbSession
from agrimart.schemas.cart import CartItemAdd, CartResponse
from agrimart.services.cart_service import CartService

router = APIRouter()


@router.get("", response_model=CartResponse)
async def get_cart(db: DbSession, current_user: CurrentUser):
    """Get the current user's cart priced at today's tables."""
    service = CartService(db)
    cart = await service.get_cart(current_user.user_id)
    return await service.build_response(cart)


@router.post("/items", response_model=CartResponse)
async def add_item(data: CartItemAdd, db: DbSession, current_user: CurrentUser):
    """Add an item, merging with an identical product/seller/size line."""
    service = CartService(db)
    cart = await service.add_item(current_user.user_id, data)
    return await service.build_response(cart)


@router.delete("/items/{cart_item_id}", response_model=CartResponse)
async def remove_item(cart_item_id: UUID, db: DbSession, current_user: CurrentUser):
    service = CartService(db)
    cart = await service.remove_item(current_user.user_id, cart_item_id)
    return await service.build_response(cart)


@router.delete("", response_model=CartResponse)
async def clear_cart(db: DbSession, current_user: CurrentUser):
    """Remove every item from the current user's cart."""
    service = CartService(db)
    cart = await service.empty(current_user.user_id)
    return await service.build_response(cart)
