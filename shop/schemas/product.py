from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid

from shop.models.product import ProductType
from shop.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from shop.core.enum_utils import create_uppercase_validator, VALID_PRODUCT_TYPES


class ProductBase(BaseModel):
    """Base product schema."""
    name: str = Field(..., min_length=1, max_length=200)
    sku: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    short_description: Optional[str] = Field(None, max_length=500)
    category_id: uuid.UUID
    product_type: ProductType = ProductType.PHYSICAL
    price: Decimal = Field(..., ge=0, decimal_places=2)
    original_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    stock_quantity: int = Field(0, ge=0)
    images: List[str] = []
    weight: Optional[Decimal] = Field(None, ge=0)
    dimensions: Optional[str] = Field(None, max_length=100)
    is_active: bool = True
    is_featured: bool = False


class ProductCreate(ProductBase, BaseCreateSchema):
    """Product creation schema."""

    normalize_product_type = create_uppercase_validator('product_type', VALID_PRODUCT_TYPES)


class ProductUpdate(BaseUpdateSchema):
    """Product update schema. Stock changes go through the inventory endpoint."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    short_description: Optional[str] = Field(None, max_length=500)
    category_id: Optional[uuid.UUID] = None
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    original_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    images: Optional[List[str]] = None
    weight: Optional[Decimal] = Field(None, ge=0)
    dimensions: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None


class InventoryUpdate(BaseModel):
    """Relative stock adjustment, positive to restock, negative to write off."""
    quantity_change: int


class ProductResponse(BaseResponseSchema):
    """Product response schema."""
    id: uuid.UUID
    name: str
    sku: str
    description: Optional[str] = None
    short_description: Optional[str] = None
    category_id: uuid.UUID
    product_type: str
    price: Decimal
    original_price: Optional[Decimal] = None
    stock_quantity: int
    images: List[str] = []
    weight: Optional[Decimal] = None
    dimensions: Optional[str] = None
    is_active: bool
    is_featured: bool
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    """Paginated product list."""
    items: List[ProductResponse]
    total: int
    page: int
    limit: int
    pages: int
