from pydantic import BaseModel, Field
from typing import List
from datetime import datetime
from decimal import Decimal
import uuid

from shop.schemas.base import BaseResponseSchema
from shop.schemas.product import ProductResponse


class CartItemAdd(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class CartItemResponse(BaseResponseSchema):
    """Cart line with the current catalog product."""
    id: uuid.UUID
    user_id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    product: ProductResponse
    created_at: datetime
    updated_at: datetime


class CartResponse(BaseModel):
    """Whole cart. Subtotal uses live catalog prices."""
    items: List[CartItemResponse]
    total_quantity: int
    subtotal: Decimal
