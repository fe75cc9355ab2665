import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Numeric, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shop.database import Base
from shop.db_types import UUIDType, JSONType, MoneyType
from shop.core.enum_utils import enum_comment

if TYPE_CHECKING:
    from shop.models.category import Category


class ProductType(str, Enum):
    """Physical goods hold stock; virtual goods never do."""
    PHYSICAL = "PHYSICAL"
    VIRTUAL = "VIRTUAL"


class Product(Base):
    """
    Catalog product.
    Stock is tracked only for PHYSICAL products and can never go negative.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index('ix_product_category_active', 'category_id', 'is_active'),
        CheckConstraint('stock_quantity >= 0', name='ck_product_stock_non_negative'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # Basic Info
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sku: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    short_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    category_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False
    )

    product_type: Mapped[str] = mapped_column(
        String(20),
        default=ProductType.PHYSICAL.value,
        nullable=False,
        comment=enum_comment(ProductType)
    )

    # Pricing
    price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    original_price: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)

    # Inventory
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Media & shipping info
    images: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(8, 3), nullable=True)
    dimensions: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Flags
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

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

    category: Mapped["Category"] = relationship("Category", back_populates="products")

    @property
    def is_physical(self) -> bool:
        return self.product_type == ProductType.PHYSICAL.value

    def __repr__(self) -> str:
        return f"<Product(sku='{self.sku}', stock={self.stock_quantity})>"
