"""Order API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from agrimart.api.deps import CurrentUser, OrderServiceDep, SellerUser
from agrimart.schemas.order import (
    OrderCreate,
    OrderEnvelope,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
)

router = APIRouter()


@router.post("", response_model=OrderEnvelope, status_code=status.HTTP_201_CREATED)
async def create_order(data: OrderCreate, service: OrderServiceDep, current_user: CurrentUser):
    """Place an order for one product or for the whole cart.

    COD orders go straight to processing; online orders stay pending until
    the payment webhook (or callback verification) confirms them.
    """
    order = await service.create_order(current_user, data)
    return OrderEnvelope(message="Order created successfully", order=OrderResponse.from_order(order))


@router.get("", response_model=OrderListResponse)
async def get_my_orders(
    service: OrderServiceDep,
    current_user: CurrentUser,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
):
    """Get current user's orders."""
    orders, total = await service.get_user_orders(
        user_id=current_user.user_id,
        skip=skip,
        limit=limit,
    )
    return OrderListResponse(orders=[OrderResponse.from_order(o) for o in orders], total=total)


@router.get("/seller", response_model=OrderListResponse)
async def get_seller_orders(
    service: OrderServiceDep,
    seller: SellerUser,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
):
    """Get orders containing the seller's products."""
    orders, total = await service.get_seller_orders(seller.user_id, skip=skip, limit=limit)
    return OrderListResponse(orders=[OrderResponse.from_order(o) for o in orders], total=total)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: UUID, service: OrderServiceDep, current_user: CurrentUser):
    order = await service.get_for_user(current_user, order_id)
    return OrderResponse.from_order(order)


@router.put("/{order_id}/status", response_model=OrderEnvelope)
async def update_order_status(
    order_id: UUID, data: OrderStatusUpdate, service: OrderServiceDep, seller: SellerUser
):
    order = await service.update_status(seller, order_id, data.status)
    return OrderEnvelope(
        message="Order status updated successfully", order=OrderResponse.from_order(order)
    )


@router.put("/{order_id}/cancel", response_model=OrderEnvelope)
async def cancel_order(order_id: UUID, service: OrderServiceDep, current_user: CurrentUser):
    order = await service.cancel_order(current_user, order_id)
    return OrderEnvelope(message="Order cancelled successfully", order=OrderResponse.from_order(order))
