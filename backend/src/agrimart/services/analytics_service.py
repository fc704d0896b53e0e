"""Seller sales analytics with a Redis response cache."""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from redis.exceptions import RedisError
from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.models.enums import OrderStatus
from agrimart.models.order import Order, OrderItem
from agrimart.schemas.analytics import AnalyticsPeriod, SalesSummary, TopProduct
from agrimart.services.redis_service import RedisService

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "365d": 365}

# Cache namespace for the platform-wide view
ADMIN_SCOPE = "admin"


class AnalyticsService:
    """Aggregates order lines into per-seller (or platform) sales summaries.

    Results are cached per seller, period and query; the cache may serve
    slightly stale numbers until its TTL runs out or an order event
    invalidates it.
    """

    def __init__(self, db: AsyncSession, redis_service: RedisService):
        self.db = db
        self.redis_service = redis_service

    async def sales_summary(
        self,
        seller_id: UUID | None,
        period: AnalyticsPeriod = "30d",
        limit: int = 5,
    ) -> SalesSummary:
        """Get the sales summary for one seller, or the platform when None.

        Args:
            seller_id: Seller UUID, None for all sellers
            period: Look-back window
            limit: Number of top products to include

        Returns:
            Summary, with ``cached`` set when served from Redis
        """
        scope = str(seller_id) if seller_id else ADMIN_SCOPE
        key = self.redis_service.analytics_key(scope, period, {"limit": limit})

        redis_ok = True
        try:
            cached = await self.redis_service.get_cached_analytics(key)
        except RedisError as e:
            logger.warning(f"Analytics cache unavailable, computing {key}: {e}")
            cached = None
            redis_ok = False

        if cached is not None:
            summary = SalesSummary.model_validate(cached)
            summary.cached = True
            return summary

        summary = await self._compute(seller_id, period, limit)
        if redis_ok:
            try:
                await self.redis_service.cache_analytics(
                    scope, key, summary.model_dump(mode="json")
                )
            except RedisError as e:
                logger.warning(f"Failed to cache analytics for {key}: {e}")
        return summary

    async def _compute(
        self, seller_id: UUID | None, period: AnalyticsPeriod, limit: int
    ) -> SalesSummary:
        since = datetime.now(timezone.utc) - timedelta(days=PERIOD_DAYS[period])
        line_total = OrderItem.discounted_price * OrderItem.quantity

        filters = [
            Order.created_at >= since,
            Order.status != OrderStatus.CANCELLED.value,
        ]
        if seller_id is not None:
            filters.append(OrderItem.seller_id == seller_id)

        totals = await self.db.execute(
            select(
                func.coalesce(func.sum(line_total), 0),
                func.count(distinct(Order.order_id)),
                func.coalesce(func.sum(OrderItem.quantity), 0),
            )
            .select_from(OrderItem)
            .join(Order, Order.order_id == OrderItem.order_id)
            .where(*filters)
        )
        revenue, order_count, units = totals.one()

        top = await self.db.execute(
            select(
                OrderItem.product_id,
                OrderItem.product_name,
                func.sum(OrderItem.quantity).label("units"),
                func.sum(line_total).label("revenue"),
            )
            .join(Order, Order.order_id == OrderItem.order_id)
            .where(*filters)
            .group_by(OrderItem.product_id, OrderItem.product_name)
            .order_by(func.sum(line_total).desc())
            .limit(limit)
        )

        return SalesSummary(
            seller_id=seller_id,
            period=period,
            revenue=Decimal(revenue),
            order_count=order_count,
            units_sold=int(units),
            top_products=[
                TopProduct(
                    product_id=row.product_id,
                    product_name=row.product_name,
                    units=int(row.units),
                    revenue=Decimal(row.revenue),
                )
                for row in top.all()
            ],
        )

    async def invalidate(self, seller_ids: set[UUID]) -> None:
        """Drop cached summaries for the given sellers and the platform view.

        Cache trouble is logged, never raised: it must not fail the order
        event that triggered it.
        """
        scopes = [str(s) for s in seller_ids] + [ADMIN_SCOPE]
        for scope in scopes:
            try:
                await self.redis_service.invalidate_analytics(scope)
            except RedisError as e:
                logger.warning(f"Failed to invalidate analytics cache for {scope}: {e}")
