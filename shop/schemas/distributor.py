from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid

from shop.models.distributor import DistributorStatus
from shop.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from shop.core.enum_utils import (
    create_uppercase_validator,
    VALID_DISTRIBUTOR_STATUSES,
)


# ==================== DISTRIBUTOR SCHEMAS ====================

class DistributorCreate(BaseCreateSchema):
    """Open a distributor account for an existing user."""
    user_id: uuid.UUID
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=1, decimal_places=4)


class DistributorUpdate(BaseUpdateSchema):
    """Distributor update schema. The referral code never changes."""
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=1, decimal_places=4)
    status: Optional[DistributorStatus] = None

    normalize_status = create_uppercase_validator('status', VALID_DISTRIBUTOR_STATUSES)


class DistributorResponse(BaseResponseSchema):
    """Distributor response schema."""
    id: uuid.UUID
    user_id: uuid.UUID
    referral_code: str
    commission_rate: Decimal
    total_earnings: Decimal
    status: str  # VARCHAR in DB
    created_at: datetime
    updated_at: datetime


class DistributorListResponse(BaseModel):
    items: List[DistributorResponse]
    total: int


# ==================== COMMISSION SCHEMAS ====================

class CommissionCreate(BaseCreateSchema):
    """Manual commission entry for a distributor on an order."""
    distributor_id: uuid.UUID
    order_id: uuid.UUID
    commission_rate: Decimal = Field(..., ge=0, le=1, decimal_places=4)
    commission_amount: Optional[Decimal] = Field(None, ge=0)
    level: int = Field(1, ge=1, le=2)


class CommissionResponse(BaseResponseSchema):
    """Commission response schema."""
    id: uuid.UUID
    order_id: uuid.UUID
    beneficiary_id: uuid.UUID
    distributor_id: Optional[uuid.UUID] = None
    level: int
    commission_rate: Decimal
    commission_amount: Decimal
    status: str  # VARCHAR in DB
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime


class CommissionListResponse(BaseModel):
    """Paginated commission list."""
    items: List[CommissionResponse]
    total: int
    page: int
    limit: int
    pages: int
