import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shop.database import Base
from shop.db_types import UUIDType
from shop.core.enum_utils import enum_comment

if TYPE_CHECKING:
    from shop.models.address import Address
    from shop.models.distributor import Distributor


class UserRole(str, Enum):
    """User role enumeration."""
    CONSUMER = "CONSUMER"
    ADMIN = "ADMIN"
    DISTRIBUTOR = "DISTRIBUTOR"


class User(Base):
    """
    Shop user.

    Users form a referral graph through ``referrer_id``. The second-level
    referrer is copied from the referrer at creation time and never
    re-derived, so historical commission attribution stays stable.
    """
    __tablename__ = "users"
    __table_args__ = (
        Index('ix_users_referrer', 'referrer_id'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.CONSUMER.value,
        nullable=False,
        comment=enum_comment(UserRole)
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Referral chain
    referrer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="First-level referrer"
    )
    secondary_referrer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Referrer's referrer, snapshot at registration"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    addresses: Mapped[List["Address"]] = relationship(
        "Address",
        back_populates="user",
        cascade="all, delete-orphan"
    )
    distributor: Mapped[Optional["Distributor"]] = relationship(
        "Distributor",
        back_populates="user",
        uselist=False
    )

    @property
    def full_name(self) -> str:
        """Get full name, falling back to the username."""
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else self.username

    def __repr__(self) -> str:
        return f"<User(username='{self.username}', role='{self.role}')>"
