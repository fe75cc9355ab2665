from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from shop.api.deps import DB, Page
from shop.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    InventoryUpdate,
)
from shop.services.catalog_service import CatalogService


router = APIRouter(tags=["Products"])


@router.get("", response_model=ProductListResponse)
async def list_products(
    db: DB,
    page: Page,
    category_id: Optional[uuid.UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    is_featured: Optional[bool] = Query(None),
    product_type: Optional[str] = Query(None, description="PHYSICAL or VIRTUAL"),
    search: Optional[str] = Query(None, description="Search by name, SKU or description"),
):
    """Get paginated list of products."""
    products, total = await CatalogService(db).get_products(
        category_id=category_id,
        is_active=is_active,
        is_featured=is_featured,
        product_type=product_type,
        search=search,
        skip=page.skip,
        limit=page.limit,
    )
    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page.page,
        limit=page.limit,
        pages=page.pages(total),
    )


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(data: ProductCreate, db: DB):
    product = await CatalogService(db).create_product(data)
    return ProductResponse.model_validate(product)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: uuid.UUID, db: DB):
    product = await CatalogService(db).get_product_by_id(product_id)
    return ProductResponse.model_validate(product)


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: uuid.UUID, data: ProductUpdate, db: DB):
    product = await CatalogService(db).update_product(product_id, data)
    return ProductResponse.model_validate(product)


@router.patch("/{product_id}/inventory", response_model=ProductResponse)
async def update_inventory(product_id: uuid.UUID, data: InventoryUpdate, db: DB):
    """Apply a relative stock change."""
    product = await CatalogService(db).update_inventory(product_id, data.quantity_change)
    return ProductResponse.model_validate(product)
