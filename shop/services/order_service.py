from typing import Dict, List, Optional, Tuple
from datetime import datetime, timezone
from decimal import Decimal
import uuid
import logging

from sqlalchemy import select, func, and_
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from shop.config import settings
from shop.core.enum_utils import get_enum_value
from shop.core.exceptions import (
    ShopError,
    NotFoundError,
    ValidationError,
    InvalidStateError,
    AlreadyExistsError,
    InsufficientInventoryError,
)
from shop.models.distributor import Commission, CommissionStatus
from shop.models.order import Order, OrderItem, OrderStatus, OrderStatusHistory, PaymentStatus
from shop.models.product import Product
from shop.models.user import User
from shop.schemas.order import OrderCreate, OrderUpdate
from shop.services.address_service import AddressService, format_address
from shop.services.catalog_service import CatalogService
from shop.services.referral_service import CommissionDraft, get_commission_strategy

logger = logging.getLogger(__name__)

# Statuses after which the shipping address is frozen
ADDRESS_LOCKED_STATUSES = {
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.REFUNDED.value,
}


class OrderService:
    """
    Order workflow engine.

    ``create_order`` validates everything with reads only, then writes the
    order, its items, the first status history row, stock reservations and
    commissions in one transaction. Any failure during the write rolls the
    whole order back.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog = CatalogService(db)

    # ==================== ORDER NUMBER GENERATION ====================

    async def generate_order_number(self) -> str:
        """Generate unique order number: ORD-YYYYMMDD-XXXX"""
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        prefix = f"{settings.ORDER_NUMBER_PREFIX}-{today}-"

        # Get count of orders today
        stmt = select(func.count(Order.id)).where(
            Order.order_number.like(f"{prefix}%")
        )
        count = (await self.db.execute(stmt)).scalar() or 0

        return f"{prefix}{(count + 1):04d}"

    # ==================== ORDER QUERIES ====================

    async def get_orders(
        self,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        """Get paginated orders, newest first."""
        filters = []

        if user_id:
            filters.append(Order.user_id == user_id)

        if status:
            filters.append(Order.status == get_enum_value(status).upper())

        stmt = select(Order)
        count_stmt = select(func.count(Order.id))
        if filters:
            stmt = stmt.where(and_(*filters))
            count_stmt = count_stmt.where(and_(*filters))

        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            stmt.order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def get_user_orders(
        self,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        if not await self.db.get(User, user_id):
            raise NotFoundError("User not found", {"user_id": str(user_id)})
        return await self.get_orders(user_id=user_id, skip=skip, limit=limit)

    async def get_order_by_id(self, order_id: uuid.UUID) -> Order:
        """Get order with items, commissions and status history."""
        stmt = (
            select(Order)
            .options(
                selectinload(Order.items),
                selectinload(Order.commissions),
                selectinload(Order.status_history),
            )
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        order = (await self.db.execute(stmt)).scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found", {"order_id": str(order_id)})
        return order

    async def get_order_by_number(self, order_number: str) -> Order:
        result = await self.db.execute(
            select(Order.id).where(Order.order_number == order_number)
        )
        order_id = result.scalar_one_or_none()
        if not order_id:
            raise NotFoundError("Order not found", {"order_number": order_number})
        return await self.get_order_by_id(order_id)

    async def get_order_items(self, order_id: uuid.UUID) -> List[OrderItem]:
        order = await self.get_order_by_id(order_id)
        return list(order.items)

    # ==================== ORDER CREATION ====================

    async def create_order(self, data: OrderCreate) -> Order:
        """
        Create an order.

        Validation order: items, user, shipping address, product batch,
        stock. Each failure raises before anything is written.
        """
        # Validate item list before any lookup
        if not data.items:
            raise ValidationError("Order must contain at least one item")
        for item_data in data.items:
            if item_data.quantity is None or item_data.quantity <= 0:
                raise ValidationError(
                    "Item quantity must be positive",
                    {"product_id": str(item_data.product_id), "quantity": item_data.quantity}
                )

        # Get user
        user = await self.db.get(User, data.user_id)
        if not user:
            raise NotFoundError("User not found", {"user_id": str(data.user_id)})

        # Resolve shipping address to a snapshot string
        shipping_address = data.shipping_address
        if data.shipping_address_id:
            address = await AddressService(self.db).get_user_address(
                data.user_id, data.shipping_address_id
            )
            shipping_address = format_address(address)

        # All products must exist and be active
        products = await self._get_available_products(data)

        # Stock is checked against the summed quantity per product
        requested: Dict[uuid.UUID, int] = {}
        for item_data in data.items:
            requested[item_data.product_id] = requested.get(item_data.product_id, 0) + item_data.quantity

        for product_id, quantity in requested.items():
            product = products[product_id]
            if product.is_physical and product.stock_quantity < quantity:
                raise InsufficientInventoryError(
                    product.id, product.name, product.stock_quantity, quantity
                )

        # Price each line
        total_amount = Decimal("0.00")
        items_data = []
        for item_data in data.items:
            product = products[item_data.product_id]
            unit_price = item_data.unit_price if item_data.unit_price is not None else product.price
            line_total = unit_price * item_data.quantity

            items_data.append({
                "product": product,
                "quantity": item_data.quantity,
                "unit_price": unit_price,
                "total_price": line_total,
            })
            total_amount += line_total

        has_physical = any(item["product"].is_physical for item in items_data)
        shipping_fee = settings.SHIPPING_FEE if has_physical else Decimal("0.00")
        discount_amount = Decimal("0.00")
        final_amount = total_amount + shipping_fee - discount_amount

        # Resolve commissions
        strategy = get_commission_strategy(self.db, data.referral_code)
        drafts = await strategy.resolve(user, total_amount, final_amount)

        order_number = await self.generate_order_number()

        try:
            order = Order(
                order_number=order_number,
                user_id=user.id,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                total_amount=total_amount,
                shipping_fee=shipping_fee,
                discount_amount=discount_amount,
                final_amount=final_amount,
                referral_fee_level_1=self._level_total(drafts, 1),
                referral_fee_level_2=self._level_total(drafts, 2),
                referral_code=data.referral_code,
                payment_method=data.payment_method,
                shipping_address=shipping_address,
                notes=data.notes,
            )
            self.db.add(order)
            await self.db.flush()

            # Create order items
            for item in items_data:
                self.db.add(OrderItem(
                    order_id=order.id,
                    product_id=item["product"].id,
                    product_name=item["product"].name,
                    quantity=item["quantity"],
                    unit_price=item["unit_price"],
                    total_price=item["total_price"],
                ))

            # Create initial status history
            self.db.add(OrderStatusHistory(
                order_id=order.id,
                from_status=None,
                to_status=OrderStatus.PENDING.value,
                notes="Order created",
            ))

            # Reserve stock, re-checked by the UPDATE itself
            for product_id, quantity in requested.items():
                await self.catalog.reserve_stock(products[product_id], quantity)

            for draft in drafts:
                self.db.add(Commission(
                    order_id=order.id,
                    beneficiary_id=draft.beneficiary_id,
                    distributor_id=draft.distributor_id,
                    level=draft.level,
                    commission_rate=draft.commission_rate,
                    commission_amount=draft.commission_amount,
                    status=CommissionStatus.PENDING.value,
                ))

            await self.db.commit()

        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"Database integrity error creating order {order_number}: {e}")
            if "commissions" in str(e.orig).lower() or "uq_commission" in str(e.orig).lower():
                raise AlreadyExistsError(
                    "Commission already exists for this order",
                    {"order_number": order_number}
                ) from e
            raise
        except ShopError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Unexpected error creating order {order_number}: {e}")
            raise

        logger.info(
            f"Order {order_number} created: total={total_amount}, final={final_amount}, "
            f"commissions={len(drafts)}"
        )
        return await self.get_order_by_id(order.id)

    async def _get_available_products(self, data: OrderCreate) -> Dict[uuid.UUID, Product]:
        """Batch check: every referenced product exists and is active."""
        product_ids = [item.product_id for item in data.items]
        found = {p.id: p for p in await self.catalog.get_products_by_ids(product_ids)}

        unavailable = [
            str(pid) for pid in dict.fromkeys(product_ids)
            if pid not in found or not found[pid].is_active
        ]
        if unavailable:
            raise InvalidStateError(
                f"Products not available or disabled: {', '.join(unavailable)}",
                {"product_ids": unavailable}
            )
        return found

    @staticmethod
    def _level_total(drafts: List[CommissionDraft], level: int) -> Optional[Decimal]:
        amounts = [d.commission_amount for d in drafts if d.level == level]
        return sum(amounts, Decimal("0")) if amounts else None

    # ==================== ORDER UPDATES ====================

    async def update_order(self, order_id: uuid.UUID, data: OrderUpdate) -> Order:
        """
        Partial update. Only supplied fields change; a status change goes
        through the lifecycle rules.

        Every check runs before anything is written, and the address edit
        shares one transaction with the status change.
        """
        from shop.services.order_lifecycle_service import OrderLifecycleService

        lifecycle = OrderLifecycleService(self.db)
        order = await self.get_order_by_id(order_id)
        update_data = data.model_dump(exclude_unset=True)
        new_status = update_data.get("status")

        if "shipping_address" in update_data and order.status in ADDRESS_LOCKED_STATUSES:
            raise InvalidStateError(
                f"Shipping address cannot be changed on a {order.status} order",
                {"order_id": str(order_id), "status": order.status}
            )
        if new_status is not None:
            lifecycle.validate_status_change(order, new_status)

        try:
            if "shipping_address" in update_data:
                order.shipping_address = update_data["shipping_address"]
                await self.db.flush()

            if new_status is not None:
                return await lifecycle.update_order_status(order_id, new_status)

            await self.db.commit()
        except ShopError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error updating order {order_id}: {e}")
            raise

        return await self.get_order_by_id(order_id)
