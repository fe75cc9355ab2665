from pydantic import BaseModel, Field, computed_field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid

from shop.models.order import OrderStatus
from shop.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from shop.schemas.distributor import CommissionResponse
from shop.core.enum_utils import create_uppercase_validator, VALID_ORDER_STATUSES


# ==================== ORDER ITEM SCHEMAS ====================

class OrderItemCreate(BaseModel):
    """Order item creation schema."""
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1)
    unit_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)  # Override price if needed


class OrderItemResponse(BaseResponseSchema):
    """Order item response schema."""
    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    created_at: datetime


# ==================== STATUS HISTORY SCHEMAS ====================

class StatusHistoryResponse(BaseResponseSchema):
    """Order status history response."""
    id: uuid.UUID
    from_status: Optional[str] = None  # VARCHAR in DB
    to_status: str  # VARCHAR in DB
    notes: Optional[str] = None
    created_at: datetime


# ==================== ORDER SCHEMAS ====================

class OrderCreate(BaseCreateSchema):
    """
    Order creation schema.

    Shipping is either a saved address of the user (``shipping_address_id``)
    or free text (``shipping_address``); both may be omitted for virtual-only
    orders.
    """
    user_id: uuid.UUID
    items: List[OrderItemCreate] = Field(..., min_length=1)
    shipping_address_id: Optional[uuid.UUID] = None
    shipping_address: Optional[str] = None
    referral_code: Optional[str] = Field(None, max_length=30)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class OrderUpdate(BaseUpdateSchema):
    """Partial order update."""
    status: Optional[OrderStatus] = None
    shipping_address: Optional[str] = None

    normalize_status = create_uppercase_validator('status', VALID_ORDER_STATUSES)


class OrderStatusUpdate(BaseModel):
    """Order status update schema."""
    status: OrderStatus
    notes: Optional[str] = None

    normalize_status = create_uppercase_validator('status', VALID_ORDER_STATUSES)


class OrderCancel(BaseModel):
    reason: Optional[str] = None


class PaymentConfirmation(BaseModel):
    """Confirmation handed over by the payment provider. Not interpreted beyond these fields."""
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class OrderResponse(BaseResponseSchema):
    """Order response schema."""
    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID
    status: str  # VARCHAR in DB
    payment_status: str  # VARCHAR in DB
    total_amount: Decimal
    shipping_fee: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    referral_fee_level_1: Optional[Decimal] = None
    referral_fee_level_2: Optional[Decimal] = None
    referral_code: Optional[str] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse] = []
    commissions: List[CommissionResponse] = []
    status_history: List[StatusHistoryResponse] = []

    @computed_field
    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


class OrderSummary(BaseResponseSchema):
    """Order row for list views, without nested collections."""
    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID
    status: str
    payment_status: str
    total_amount: Decimal
    final_amount: Decimal
    created_at: datetime


class OrderListResponse(BaseModel):
    """Paginated order list."""
    items: List[OrderSummary]
    total: int
    page: int
    limit: int
    pages: int
