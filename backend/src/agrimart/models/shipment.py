"""Shipping fulfilment sub-record of an order."""

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agrimart.core.database import Base
from agrimart.models.base import TimestampMixin
from agrimart.models.enums import ShipmentState

if TYPE_CHECKING:
    from agrimart.models.order import Order


class Shipment(Base, TimestampMixin):
    """Provider shipment for an order.

    ``provider_order_id`` is what cancellation needs; ``shipment_id`` is what
    tracking needs. The two are never interchangeable.
    """

    __tablename__ = "shipments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.order_id"),
        unique=True,
        nullable=False,
    )
    state: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ShipmentState.PENDING.value,
    )
    provider_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    shipment_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    awb_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    courier_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    courier_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pickup_location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    provider_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    label_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="shipment")

    __table_args__ = (
        Index("idx_shipments_state", "state"),
    )

    @property
    def is_live(self) -> bool:
        return self.state in (ShipmentState.CREATED.value, ShipmentState.TRACKED.value)
