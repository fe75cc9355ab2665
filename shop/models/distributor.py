"""Distributor and commission models for the referral program.

A distributor account belongs to exactly one user and carries the
referral code customers enter at checkout. Commissions are earned per
order, either through that code or through the user referral chain,
and accrue into the distributor's ``total_earnings`` once paid.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Integer, Numeric, UniqueConstraint, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shop.database import Base
from shop.db_types import UUIDType, RateType, CommissionAmountType
from shop.core.enum_utils import enum_comment

if TYPE_CHECKING:
    from shop.models.user import User
    from shop.models.order import Order


# ==================== ENUMS (stored as VARCHAR) ====================

class DistributorStatus(str, Enum):
    """Only ACTIVE distributors earn through their referral code."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class CommissionStatus(str, Enum):
    """Commission status, follows the owning order's lifecycle."""
    PENDING = "PENDING"        # Order placed, not yet paid
    PAID = "PAID"              # Settled into distributor earnings
    CANCELLED = "CANCELLED"    # Order cancelled


class Distributor(Base):
    """Distributor account linked one-to-one with a user."""
    __tablename__ = "distributors"
    __table_args__ = (
        Index('ix_distributors_status', 'status'),
        CheckConstraint(
            'commission_rate >= 0 AND commission_rate <= 1',
            name='ck_distributor_rate_fraction'
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    referral_code: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Opaque code customers enter at checkout"
    )
    commission_rate: Mapped[Decimal] = mapped_column(
        RateType,
        nullable=False,
        comment="Fraction of final order amount, e.g. 0.1000"
    )
    total_earnings: Mapped[Decimal] = mapped_column(
        Numeric(14, 4),
        default=Decimal("0"),
        nullable=False,
        comment="Running sum of paid commissions"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=DistributorStatus.ACTIVE.value,
        nullable=False,
        comment=enum_comment(DistributorStatus)
    )

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
    user: Mapped["User"] = relationship("User", back_populates="distributor")
    commissions: Mapped[List["Commission"]] = relationship(
        "Commission",
        back_populates="distributor"
    )

    def __repr__(self) -> str:
        return f"<Distributor(code='{self.referral_code}', status='{self.status}')>"


class Commission(Base):
    """
    Commission earned on one order by one referrer.

    ``beneficiary_id`` is the user credited. ``distributor_id`` is set when
    that user holds a distributor account; paid amounts accrue there.
    """
    __tablename__ = "commissions"
    __table_args__ = (
        UniqueConstraint("beneficiary_id", "order_id", name="uq_commission_beneficiary_order"),
        Index('ix_commissions_status', 'status'),
        Index('ix_commissions_distributor_created', 'distributor_id', 'created_at'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    beneficiary_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    distributor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("distributors.id", ondelete="SET NULL"),
        nullable=True
    )

    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False, comment="1 or 2")
    commission_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(CommissionAmountType, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=CommissionStatus.PENDING.value,
        nullable=False,
        comment=enum_comment(CommissionStatus)
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    order: Mapped["Order"] = relationship("Order", back_populates="commissions")
    distributor: Mapped[Optional["Distributor"]] = relationship(
        "Distributor",
        back_populates="commissions"
    )

    def __repr__(self) -> str:
        return f"<Commission(level={self.level}, amount={self.commission_amount}, status={self.status})>"
