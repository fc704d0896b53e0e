"""User model for buyers, sellers and admins."""

import uuid
from typing import TYPE_CHECKING, List

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agrimart.core.database import Base
from agrimart.models.base import TimestampMixin
from agrimart.models.enums import UserRole

if TYPE_CHECKING:
    from agrimart.models.address import Address
    from agrimart.models.order import Order


class User(Base, TimestampMixin):
    """User model representing a marketplace account."""

    __tablename__ = "users"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    phone: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.BUYER.value,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
    )

    # Relationships
    addresses: Mapped[List["Address"]] = relationship("Address", back_populates="user")
    orders: Mapped[List["Order"]] = relationship("Order", back_populates="user")

    __table_args__ = (
        Index("idx_users_email", "email"),
        Index("idx_users_role", "role"),
    )

    @property
    def is_seller(self) -> bool:
        return self.role in (UserRole.SELLER.value, UserRole.ADMIN.value)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
