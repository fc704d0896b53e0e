"""Sales analytics API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query

from agrimart.api.deps import AdminUser, AnalyticsServiceDep, SellerUser
from agrimart.schemas.analytics import AnalyticsPeriod, SalesSummary

router = APIRouter()


@router.get("/seller", response_model=SalesSummary)
async def seller_summary(
    service: AnalyticsServiceDep,
    seller: SellerUser,
    period: AnalyticsPeriod = Query("30d"),
    limit: int = Query(5, ge=1, le=50),
):
    """Sales summary for the current seller. May be up to one cache TTL stale."""
    return await service.sales_summary(seller.user_id, period=period, limit=limit)


@router.get("/admin", response_model=SalesSummary)
async def platform_summary(
    service: AnalyticsServiceDep,
    admin: AdminUser,
    period: AnalyticsPeriod = Query("30d"),
    limit: int = Query(5, ge=1, le=50),
    seller_id: UUID | None = Query(None),
):
    """Platform-wide summary, or one seller's when ``seller_id`` is given."""
    return await service.sales_summary(seller_id, period=period, limit=limit)
