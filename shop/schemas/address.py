from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
import uuid

from shop.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


class AddressBase(BaseModel):
    """Base address schema."""
    recipient_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=20)
    province: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    district: str = Field(..., min_length=1, max_length=100)
    street_address: str = Field(..., min_length=1, max_length=255)
    postal_code: Optional[str] = Field(None, max_length=20)
    is_default: bool = False


class AddressCreate(AddressBase, BaseCreateSchema):
    """Address creation schema."""
    pass


class AddressUpdate(BaseUpdateSchema):
    """Address update schema."""
    recipient_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=1, max_length=20)
    province: Optional[str] = Field(None, min_length=1, max_length=100)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    district: Optional[str] = Field(None, min_length=1, max_length=100)
    street_address: Optional[str] = Field(None, min_length=1, max_length=255)
    postal_code: Optional[str] = Field(None, max_length=20)
    is_default: Optional[bool] = None


class AddressResponse(BaseResponseSchema):
    """Address response schema."""
    id: uuid.UUID
    user_id: uuid.UUID
    recipient_name: str
    phone: str
    province: str
    city: str
    district: str
    street_address: str
    postal_code: Optional[str] = None
    is_default: bool
    created_at: datetime
    updated_at: datetime
