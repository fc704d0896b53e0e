"""Product catalog with seller-scoped price/size tables."""

import uuid
from decimal import Decimal
from typing import List

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agrimart.core.database import Base
from agrimart.models.base import TimestampMixin


class Product(Base, TimestampMixin):
    """Catalog entry, sold by one or more sellers."""

    __tablename__ = "products"

    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    category: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    image_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    # Seller that listed the product first; used when an order item names no seller
    seller_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id"),
        nullable=False,
    )

    # Relationships
    sellers: Mapped[List["ProductSeller"]] = relationship(
        "ProductSeller", back_populates="product", cascade="all, delete-orphan"
    )
    price_sizes: Mapped[List["PriceSize"]] = relationship(
        "PriceSize", back_populates="product", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_products_category", "category"),
    )


class ProductSeller(Base, TimestampMixin):
    """Link between a product and a seller offering it."""

    __tablename__ = "product_sellers"

    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.product_id", ondelete="CASCADE"),
        primary_key=True,
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id"),
        primary_key=True,
    )
    shop_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    product: Mapped["Product"] = relationship("Product", back_populates="sellers")


class PriceSize(Base):
    """One size variant of a product's price/stock table.

    ``seller_id`` NULL marks the product's default table.
    """

    __tablename__ = "price_sizes"

    price_size_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.product_id", ondelete="CASCADE"),
        nullable=False,
    )
    seller_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id"),
        nullable=True,
    )
    size: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    price: Mapped[Decimal] = mapped_column(
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
        default=0,
    )

    product: Mapped["Product"] = relationship("Product", back_populates="price_sizes")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="chk_price_size_quantity_non_negative"),
        CheckConstraint("discounted_price <= price", name="chk_price_size_discount"),
        UniqueConstraint("product_id", "seller_id", "size", name="uq_price_size_product_seller_size"),
        Index("idx_price_sizes_product_seller", "product_id", "seller_id"),
        # NULL seller_id is distinct under the constraint above
        Index(
            "uq_price_size_default_size",
            "product_id",
            "size",
            unique=True,
            postgresql_where=text("seller_id IS NULL"),
        ),
    )
