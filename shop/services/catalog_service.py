"""Catalog store: categories, products and stock.

Stock changes made on behalf of orders go through ``reserve_stock`` and
``restore_stock``. Both issue a single UPDATE so the current stock is
re-checked at write time instead of relying on a value read earlier.
"""
from typing import List, Optional, Tuple, Sequence
import uuid
import logging

from sqlalchemy import select, func, update, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from shop.core.enum_utils import get_enum_value
from shop.core.exceptions import (
    NotFoundError,
    ValidationError,
    InvalidStateError,
    AlreadyExistsError,
    InsufficientInventoryError,
)
from shop.models.category import Category
from shop.models.product import Product
from shop.schemas.category import CategoryCreate, CategoryUpdate
from shop.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for categories, products and inventory."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== CATEGORY METHODS ====================

    async def get_categories(self, is_active: Optional[bool] = True) -> List[Category]:
        stmt = select(Category).order_by(Category.sort_order, Category.name)
        if is_active is not None:
            stmt = stmt.where(Category.is_active == is_active)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_category_by_id(self, category_id: uuid.UUID) -> Category:
        category = await self.db.get(Category, category_id)
        if not category:
            raise NotFoundError("Category not found", {"category_id": str(category_id)})
        return category

    async def create_category(self, data: CategoryCreate) -> Category:
        if data.parent_id:
            await self.get_category_by_id(data.parent_id)

        category = Category(**data.model_dump())
        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def update_category(self, category_id: uuid.UUID, data: CategoryUpdate) -> Category:
        category = await self.get_category_by_id(category_id)
        update_data = data.model_dump(exclude_unset=True)

        parent_id = update_data.get("parent_id")
        if parent_id is not None:
            if parent_id == category.id:
                raise ValidationError(
                    "A category cannot be its own parent",
                    {"category_id": str(category_id)}
                )
            await self.get_category_by_id(parent_id)

        for field, value in update_data.items():
            setattr(category, field, value)

        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: uuid.UUID) -> Category:
        """Soft delete: the category stays referenced by its products."""
        category = await self.get_category_by_id(category_id)
        category.is_active = False
        await self.db.commit()
        await self.db.refresh(category)
        return category

    # ==================== PRODUCT METHODS ====================

    async def get_products(
        self,
        category_id: Optional[uuid.UUID] = None,
        is_active: Optional[bool] = None,
        is_featured: Optional[bool] = None,
        product_type: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Product], int]:
        """Get paginated products with filters."""
        filters = []

        if category_id:
            filters.append(Product.category_id == category_id)
        if is_active is not None:
            filters.append(Product.is_active == is_active)
        if is_featured is not None:
            filters.append(Product.is_featured == is_featured)
        if product_type:
            filters.append(Product.product_type == get_enum_value(product_type).upper())
        if search:
            search_filter = f"%{search}%"
            filters.append(
                or_(
                    Product.name.ilike(search_filter),
                    Product.sku.ilike(search_filter),
                    Product.description.ilike(search_filter),
                )
            )

        count_stmt = select(func.count(Product.id))
        stmt = select(Product).order_by(Product.created_at.desc())
        if filters:
            count_stmt = count_stmt.where(and_(*filters))
            stmt = stmt.where(and_(*filters))

        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = stmt.offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def get_product_by_id(self, product_id: uuid.UUID) -> Product:
        product = await self.db.get(Product, product_id, populate_existing=True)
        if not product:
            raise NotFoundError("Product not found", {"product_id": str(product_id)})
        return product

    async def get_products_by_ids(self, product_ids: Sequence[uuid.UUID]) -> List[Product]:
        """Fetch products in one query. Missing ids are simply absent from the result."""
        if not product_ids:
            return []
        result = await self.db.execute(
            select(Product)
            .where(Product.id.in_(set(product_ids)))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def create_product(self, data: ProductCreate) -> Product:
        await self.get_category_by_id(data.category_id)

        product_data = data.model_dump()
        product_data["product_type"] = get_enum_value(data.product_type)
        product = Product(**product_data)
        self.db.add(product)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyExistsError(
                f"Product with SKU '{data.sku}' already exists",
                {"sku": data.sku}
            )

        await self.db.refresh(product)
        return product

    async def update_product(self, product_id: uuid.UUID, data: ProductUpdate) -> Product:
        product = await self.get_product_by_id(product_id)
        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("category_id"):
            await self.get_category_by_id(update_data["category_id"])

        for field, value in update_data.items():
            setattr(product, field, value)

        await self.db.commit()
        await self.db.refresh(product)
        return product

    # ==================== INVENTORY METHODS ====================

    async def update_inventory(self, product_id: uuid.UUID, quantity_change: int) -> Product:
        """
        Apply a relative stock change from catalog administration.

        Rejects any change that would take stock below zero, for virtual
        products too. Orders never block on a virtual product's stock.
        """
        product = await self.get_product_by_id(product_id)

        if product.stock_quantity + quantity_change < 0:
            raise InvalidStateError(
                f"Stock for product '{product.name}' cannot go below zero",
                {
                    "product_id": str(product.id),
                    "stock_quantity": product.stock_quantity,
                    "quantity_change": quantity_change,
                }
            )

        product.stock_quantity += quantity_change
        await self.db.commit()
        await self.db.refresh(product)

        logger.info(
            f"Inventory updated for {product.sku}: change={quantity_change}, "
            f"stock={product.stock_quantity}"
        )
        return product

    async def reserve_stock(self, product: Product, quantity: int) -> None:
        """
        Decrement stock for a physical product inside the caller's transaction.

        The WHERE clause re-checks availability, so two concurrent orders
        cannot both take the last units.
        """
        if not product.is_physical:
            return

        result = await self.db.execute(
            update(Product)
            .where(
                Product.id == product.id,
                Product.stock_quantity >= quantity,
            )
            .values(stock_quantity=Product.stock_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            available = (await self.db.execute(
                select(Product.stock_quantity).where(Product.id == product.id)
            )).scalar() or 0
            raise InsufficientInventoryError(product.id, product.name, available, quantity)

    async def restore_stock(self, product: Product, quantity: int) -> None:
        """Add units back for a physical product. Additive, never clamped."""
        if not product.is_physical:
            return

        await self.db.execute(
            update(Product)
            .where(Product.id == product.id)
            .values(stock_quantity=Product.stock_quantity + quantity)
            .execution_options(synchronize_session=False)
        )
