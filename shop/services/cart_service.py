"""Shopping cart. Lines hold product references only; prices are read live."""
from decimal import Decimal
from typing import List, Tuple
import uuid
import logging

from sqlalchemy import select, delete, func
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from shop.core.exceptions import NotFoundError, InvalidStateError
from shop.models.cart import CartItem
from shop.models.product import Product
from shop.models.user import User

logger = logging.getLogger(__name__)


class CartService:
    """Service for user shopping carts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ensure_user(self, user_id: uuid.UUID) -> None:
        if not await self.db.get(User, user_id):
            raise NotFoundError("User not found", {"user_id": str(user_id)})

    async def _get_item(self, item_id: uuid.UUID) -> CartItem:
        result = await self.db.execute(
            select(CartItem)
            .options(selectinload(CartItem.product))
            .where(CartItem.id == item_id)
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()
        if not item:
            raise NotFoundError("Cart item not found", {"cart_item_id": str(item_id)})
        return item

    async def get_user_cart(self, user_id: uuid.UUID) -> List[CartItem]:
        await self._ensure_user(user_id)
        result = await self.db.execute(
            select(CartItem)
            .options(selectinload(CartItem.product))
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_cart_summary(self, user_id: uuid.UUID) -> Tuple[List[CartItem], int, Decimal]:
        """Cart lines with total unit count and subtotal at current prices."""
        items = await self.get_user_cart(user_id)
        total_quantity = sum(item.quantity for item in items)
        subtotal = sum((item.product.price * item.quantity for item in items), Decimal("0.00"))
        return items, total_quantity, subtotal

    async def get_cart_items_count(self, user_id: uuid.UUID) -> int:
        """Total number of units in the cart."""
        await self._ensure_user(user_id)
        result = await self.db.execute(
            select(func.coalesce(func.sum(CartItem.quantity), 0))
            .where(CartItem.user_id == user_id)
        )
        return int(result.scalar() or 0)

    async def add_to_cart(self, user_id: uuid.UUID, product_id: uuid.UUID, quantity: int) -> CartItem:
        """Add a product, or raise the quantity if it is already in the cart."""
        await self._ensure_user(user_id)

        product = await self.db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found", {"product_id": str(product_id)})
        if not product.is_active:
            raise InvalidStateError(
                f"Product '{product.name}' is not available",
                {"product_id": str(product_id)}
            )

        result = await self.db.execute(
            select(CartItem).where(
                CartItem.user_id == user_id,
                CartItem.product_id == product_id,
            )
        )
        item = result.scalar_one_or_none()

        if item:
            item.quantity += quantity
        else:
            item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
            self.db.add(item)

        await self.db.commit()
        return await self._get_item(item.id)

    async def update_cart_item(self, item_id: uuid.UUID, quantity: int) -> CartItem:
        item = await self._get_item(item_id)
        item.quantity = quantity
        await self.db.commit()
        return await self._get_item(item_id)

    async def remove_from_cart(self, item_id: uuid.UUID) -> None:
        item = await self._get_item(item_id)
        await self.db.delete(item)
        await self.db.commit()

    async def clear_cart(self, user_id: uuid.UUID) -> int:
        """Remove every line of a user's cart. Returns the number of lines removed."""
        await self._ensure_user(user_id)
        result = await self.db.execute(
            delete(CartItem)
            .where(CartItem.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount or 0
