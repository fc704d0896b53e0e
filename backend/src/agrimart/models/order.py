"""Order aggregate: order header, line items and payment state."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from agrimart.core.database import Base
from agrimart.models.enums import OrderStatus, PaymentStatus

if TYPE_CHECKING:
    from agrimart.models.shipment import Shipment
    from agrimart.models.user import User


class Order(Base):
    """Purchase transaction. Never deleted, only status-transitioned."""

    __tablename__ = "orders"

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id"),
        nullable=False,
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    payment_method: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )
    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING.value,
    )
    address_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("addresses.address_id", ondelete="SET NULL"),
        nullable=True,
    )
    # Frozen copy so edits or deletion of the Address row do not alter the order
    shipping_address: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
    )
    payment_link_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        unique=True,
    )
    payment_link_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    payment_link_status: Mapped[str | None] = mapped_column(
        String(30),
        nullable=True,
    )
    payment_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    stock_adjusted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    shipment: Mapped["Shipment | None"] = relationship(
        "Shipment",
        back_populates="order",
        uselist=False,
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="chk_order_total_non_negative"),
        Index("idx_orders_user_created", "user_id", "created_at"),
        Index("idx_orders_status", "status"),
        Index("idx_orders_payment_status", "payment_status"),
    )

    @property
    def seller_ids(self) -> set[uuid.UUID]:
        return {item.seller_id for item in self.items}

    def has_seller(self, seller_id: uuid.UUID) -> bool:
        return seller_id in self.seller_ids


class OrderItem(Base):
    """Ordered line: product, seller, size and the prices seen at checkout."""

    __tablename__ = "order_items"

    order_item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.order_id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.product_id"),
        nullable=False,
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id"),
        nullable=False,
    )
    # True when the price came from the seller's own table rather than the default one
    seller_scoped: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )
    product_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    size: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    discounted_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_order_item_quantity_positive"),
        Index("idx_order_items_seller", "seller_id"),
        Index("idx_order_items_order", "order_id"),
    )

    @property
    def line_total(self) -> Decimal:
        return self.discounted_price * self.quantity
