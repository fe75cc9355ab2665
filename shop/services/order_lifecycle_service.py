"""
Order lifecycle state machine.

Allowed transitions::

    PENDING     -> PAID, PROCESSING, SHIPPED, DELIVERED, CANCELLED
    PAID        -> PROCESSING, SHIPPED, DELIVERED, CANCELLED, REFUNDED
    PROCESSING  -> SHIPPED, DELIVERED, CANCELLED
    SHIPPED     -> DELIVERED
    DELIVERED   -> REFUNDED
    CANCELLED, REFUNDED are terminal

Status writes are compare-and-set on the status read at the start of the
operation, so two concurrent transitions of one order cannot both apply
their side effects.
"""
from typing import Dict, Iterable, Optional, Set
from datetime import datetime, timezone
import uuid
import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from shop.core.enum_utils import get_enum_value
from shop.core.exceptions import ShopError, InvalidStateError, ValidationError
from shop.models.distributor import Commission, CommissionStatus, Distributor
from shop.models.order import Order, OrderStatus, OrderStatusHistory, PaymentStatus
from shop.models.product import Product
from shop.schemas.order import PaymentConfirmation
from shop.services.catalog_service import CatalogService
from shop.services.order_service import OrderService

logger = logging.getLogger(__name__)


ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    OrderStatus.PENDING.value: {
        OrderStatus.PAID.value,
        OrderStatus.PROCESSING.value,
        OrderStatus.SHIPPED.value,
        OrderStatus.DELIVERED.value,
        OrderStatus.CANCELLED.value,
    },
    OrderStatus.PAID.value: {
        OrderStatus.PROCESSING.value,
        OrderStatus.SHIPPED.value,
        OrderStatus.DELIVERED.value,
        OrderStatus.CANCELLED.value,
        OrderStatus.REFUNDED.value,
    },
    OrderStatus.PROCESSING.value: {
        OrderStatus.SHIPPED.value,
        OrderStatus.DELIVERED.value,
        OrderStatus.CANCELLED.value,
    },
    OrderStatus.SHIPPED.value: {OrderStatus.DELIVERED.value},
    OrderStatus.DELIVERED.value: {OrderStatus.REFUNDED.value},
    OrderStatus.CANCELLED.value: set(),
    OrderStatus.REFUNDED.value: set(),
}


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in ORDER_TRANSITIONS.get(from_status, set())


class OrderLifecycleService:
    """Applies status transitions and their compensating writes."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.orders = OrderService(db)
        self.catalog = CatalogService(db)

    # ==================== CHECKS ====================

    def _check_transition(self, order: Order, to_status: str) -> None:
        if not can_transition(order.status, to_status):
            raise InvalidStateError(
                f"Cannot change order {order.order_number} from {order.status} to {to_status}",
                {
                    "order_id": str(order.id),
                    "from_status": order.status,
                    "to_status": to_status,
                }
            )

    def _check_cancellable(self, order: Order) -> None:
        if order.status == OrderStatus.CANCELLED.value:
            raise InvalidStateError(
                f"Order {order.order_number} is already cancelled",
                {"order_id": str(order.id)}
            )
        self._check_transition(order, OrderStatus.CANCELLED.value)

    def _check_payable(self, order: Order) -> None:
        if order.payment_status == PaymentStatus.PAID.value:
            raise InvalidStateError(
                f"Order {order.order_number} is already paid",
                {"order_id": str(order.id)}
            )
        if order.status in (OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value):
            raise InvalidStateError(
                f"Cannot pay a {order.status} order",
                {"order_id": str(order.id), "status": order.status}
            )

    def validate_status_change(self, order: Order, new_status) -> str:
        """
        Run every check a move to ``new_status`` makes, without writing.

        Returns the normalized target status. Callers that combine a status
        change with other edits use this to fail before touching the order.
        """
        to_status = (get_enum_value(new_status) or "").upper()
        if to_status not in ORDER_TRANSITIONS:
            raise ValidationError(f"Unknown order status: {new_status}", {"status": new_status})

        if to_status == OrderStatus.CANCELLED.value:
            self._check_cancellable(order)
            return to_status

        self._check_transition(order, to_status)

        if to_status == OrderStatus.PAID.value:
            self._check_payable(order)
        elif to_status == OrderStatus.REFUNDED.value and order.payment_status != PaymentStatus.PAID.value:
            raise InvalidStateError(
                f"Order {order.order_number} has no payment to refund",
                {"order_id": str(order.id), "payment_status": order.payment_status}
            )
        return to_status

    # ==================== HELPERS ====================

    async def _claim_status(self, order: Order, to_status: str, notes: Optional[str]) -> None:
        """Write the new status only if it is still the one we read, and log history."""
        from_status = order.status
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == from_status)
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidStateError(
                f"Order {order.order_number} was modified concurrently",
                {"order_id": str(order.id), "expected_status": from_status}
            )
        order.status = to_status

        self.db.add(OrderStatusHistory(
            order_id=order.id,
            from_status=from_status,
            to_status=to_status,
            notes=notes,
        ))

    async def _adjust_earnings(self, distributor_id: uuid.UUID, amount) -> None:
        await self.db.execute(
            update(Distributor)
            .where(Distributor.id == distributor_id)
            .values(total_earnings=Distributor.total_earnings + amount)
            .execution_options(synchronize_session=False)
        )

    async def _cancel_commissions(self, commissions: Iterable[Commission], now: datetime) -> int:
        """Cancel every live commission; a paid one is first taken back out of earnings."""
        cancelled = 0
        for commission in commissions:
            if commission.status == CommissionStatus.CANCELLED.value:
                continue
            if commission.status == CommissionStatus.PAID.value and commission.distributor_id:
                await self._adjust_earnings(commission.distributor_id, -commission.commission_amount)
            commission.status = CommissionStatus.CANCELLED.value
            commission.cancelled_at = now
            cancelled += 1
        return cancelled

    # ==================== TRANSITIONS ====================

    async def cancel_order(self, order_id: uuid.UUID, reason: Optional[str] = None) -> Order:
        """
        Cancel an order.

        Restores stock for physical items, cancels its commissions and marks a
        paid order's payment as refunded. A second cancel is rejected, so stock
        is never restored twice.
        """
        order = await self.orders.get_order_by_id(order_id)
        self._check_cancellable(order)

        now = datetime.now(timezone.utc)
        try:
            await self._claim_status(order, OrderStatus.CANCELLED.value, reason or "Order cancelled")

            for item in order.items:
                product = await self.db.get(Product, item.product_id)
                if product:
                    await self.catalog.restore_stock(product, item.quantity)

            cancelled = await self._cancel_commissions(order.commissions, now)

            if order.payment_status == PaymentStatus.PAID.value:
                order.payment_status = PaymentStatus.REFUNDED.value
            order.cancelled_at = now

            await self.db.commit()
        except ShopError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error cancelling order {order_id}: {e}")
            raise

        logger.info(
            f"Order {order.order_number} cancelled: stock restored for {len(order.items)} items, "
            f"{cancelled} commissions cancelled"
        )
        return await self.orders.get_order_by_id(order_id)

    async def process_payment(
        self,
        order_id: uuid.UUID,
        confirmation: Optional[PaymentConfirmation] = None,
    ) -> Order:
        """
        Record a confirmed payment and settle the order's pending commissions.

        A PENDING order moves to PAID. An order already in fulfilment keeps
        its status and only its payment status changes.
        """
        confirmation = confirmation or PaymentConfirmation()
        order = await self.orders.get_order_by_id(order_id)
        self._check_payable(order)

        now = datetime.now(timezone.utc)
        settled = 0
        try:
            if order.status == OrderStatus.PENDING.value:
                await self._claim_status(
                    order, OrderStatus.PAID.value, confirmation.notes or "Payment received"
                )

            order.payment_status = PaymentStatus.PAID.value
            order.paid_at = now
            if confirmation.payment_method:
                order.payment_method = confirmation.payment_method
            if confirmation.payment_reference:
                order.payment_reference = confirmation.payment_reference

            for commission in order.commissions:
                if commission.status != CommissionStatus.PENDING.value:
                    continue
                commission.status = CommissionStatus.PAID.value
                commission.paid_at = now
                if commission.distributor_id:
                    await self._adjust_earnings(commission.distributor_id, commission.commission_amount)
                settled += 1

            await self.db.commit()
        except ShopError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error processing payment for order {order_id}: {e}")
            raise

        logger.info(f"Payment recorded for order {order.order_number}: {settled} commissions settled")
        return await self.orders.get_order_by_id(order_id)

    async def update_order_status(
        self,
        order_id: uuid.UUID,
        new_status,
        notes: Optional[str] = None,
    ) -> Order:
        """Move an order to ``new_status`` if the transition table allows it."""
        order = await self.orders.get_order_by_id(order_id)
        to_status = self.validate_status_change(order, new_status)

        if to_status == OrderStatus.CANCELLED.value:
            return await self.cancel_order(order_id, notes)
        if to_status == OrderStatus.PAID.value:
            return await self.process_payment(order_id, PaymentConfirmation(notes=notes))

        try:
            await self._claim_status(order, to_status, notes)

            if to_status == OrderStatus.REFUNDED.value:
                order.payment_status = PaymentStatus.REFUNDED.value
                await self._cancel_commissions(order.commissions, datetime.now(timezone.utc))

            await self.db.commit()
        except ShopError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error updating status of order {order_id}: {e}")
            raise

        logger.info(f"Order {order.order_number} status changed to {to_status}")
        return await self.orders.get_order_by_id(order_id)
