"""API dependencies for authentication, database access and services."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.config import settings
from agrimart.core.database import get_db
from agrimart.core.redis import get_redis
from agrimart.core.security import decode_access_token
from agrimart.models.user import User
from agrimart.services.analytics_service import AnalyticsService
from agrimart.services.order_service import OrderService
from agrimart.services.payment_service import PaymentService
from agrimart.services.razorpay_client import RazorpayClient
from agrimart.services.redis_service import RedisService
from agrimart.services.shipment_service import ShipmentService
from agrimart.services.shiprocket_client import ShippingProvider
from agrimart.services.user_service import UserService

security = HTTPBearer()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get current authenticated user from the bearer JWT.

    Args:
        credentials: HTTP Bearer token
        db: Database session

    Returns:
        Current user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await UserService(db).get_by_id(user_uuid)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.status != "active":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not active",
        )
    return user


async def get_current_seller(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they can sell (seller or admin)."""
    if not current_user.is_seller:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Seller privileges required",
        )
    return current_user


async def get_current_admin_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they are an admin.

    Raises:
        HTTPException: If user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
SellerUser = Annotated[User, Depends(get_current_seller)]
AdminUser = Annotated[User, Depends(get_current_admin_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# Service dependency injection
# =============================================================================


async def get_redis_service() -> RedisService:
    """Get RedisService instance with shared Redis connection pool."""
    redis = await get_redis()
    return RedisService(redis, analytics_ttl=settings.ANALYTICS_CACHE_TTL_SECONDS)


RedisServiceDep = Annotated[RedisService, Depends(get_redis_service)]


def get_shipping_provider(request: Request) -> ShippingProvider:
    """Shipping client built once at start-up (holds the token cache)."""
    return request.app.state.shipping_provider


def get_payment_gateway(request: Request) -> RazorpayClient:
    return request.app.state.payment_gateway


async def get_analytics_service(db: DbSession, redis_service: RedisServiceDep) -> AnalyticsService:
    return AnalyticsService(db, redis_service)


AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]


async def get_order_service(
    db: DbSession,
    analytics: AnalyticsServiceDep,
    gateway: Annotated[RazorpayClient, Depends(get_payment_gateway)],
) -> OrderService:
    return OrderService(db, analytics, gateway)


async def get_payment_service(
    db: DbSession,
    redis_service: RedisServiceDep,
    analytics: AnalyticsServiceDep,
    gateway: Annotated[RazorpayClient, Depends(get_payment_gateway)],
) -> PaymentService:
    return PaymentService(db, gateway, redis_service=redis_service, analytics=analytics)


async def get_shipment_service(
    db: DbSession,
    analytics: AnalyticsServiceDep,
    provider: Annotated[ShippingProvider, Depends(get_shipping_provider)],
    gateway: Annotated[RazorpayClient, Depends(get_payment_gateway)],
) -> ShipmentService:
    return ShipmentService(db, provider, analytics, gateway=gateway)


OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
ShipmentServiceDep = Annotated[ShipmentService, Depends(get_shipment_service)]
