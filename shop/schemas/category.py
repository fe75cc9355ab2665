from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
import uuid

from shop.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


class CategoryBase(BaseModel):
    """Base category schema."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    sort_order: int = 0
    is_active: bool = True


class CategoryCreate(CategoryBase, BaseCreateSchema):
    """Category creation schema."""
    pass


class CategoryUpdate(BaseUpdateSchema):
    """Category update schema."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(BaseResponseSchema):
    """Category response schema."""
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    sort_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
