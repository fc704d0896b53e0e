"""Sales analytics schemas."""

from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

AnalyticsPeriod = Literal["7d", "30d", "90d", "365d"]


class TopProduct(BaseModel):
    product_id: UUID
    product_name: str
    units: int
    revenue: Decimal


class SalesSummary(BaseModel):
    seller_id: UUID | None
    period: AnalyticsPeriod
    revenue: Decimal
    order_count: int
    units_sold: int
    top_products: list[TopProduct]
    cached: bool = False
