from typing import List, Optional
import uuid

from fastapi import APIRouter, Query, status

from shop.api.deps import DB
from shop.schemas.category import CategoryCreate, CategoryUpdate, CategoryResponse
from shop.services.catalog_service import CatalogService


router = APIRouter(tags=["Categories"])


@router.get("", response_model=List[CategoryResponse])
async def list_categories(
    db: DB,
    is_active: Optional[bool] = Query(True, description="Omit inactive categories by default"),
):
    categories = await CatalogService(db).get_categories(is_active=is_active)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(data: CategoryCreate, db: DB):
    category = await CatalogService(db).create_category(data)
    return CategoryResponse.model_validate(category)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: uuid.UUID, db: DB):
    category = await CatalogService(db).get_category_by_id(category_id)
    return CategoryResponse.model_validate(category)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(category_id: uuid.UUID, data: CategoryUpdate, db: DB):
    category = await CatalogService(db).update_category(category_id, data)
    return CategoryResponse.model_validate(category)


@router.delete("/{category_id}", response_model=CategoryResponse)
async def delete_category(category_id: uuid.UUID, db: DB):
    """Deactivate a category. Products keep their reference."""
    category = await CatalogService(db).delete_category(category_id)
    return CategoryResponse.model_validate(category)
