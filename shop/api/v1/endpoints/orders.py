from typing import List, Optional
import uuid

from fastapi import APIRouter, Query, status

from shop.api.deps import DB, Page
from shop.core.enum_utils import normalize_to_uppercase, VALID_ORDER_STATUSES
from shop.schemas.order import (
    OrderCreate,
    OrderUpdate,
    OrderStatusUpdate,
    OrderCancel,
    PaymentConfirmation,
    OrderResponse,
    OrderListResponse,
    OrderItemResponse,
    OrderSummary,
)
from shop.services.order_service import OrderService
from shop.services.order_lifecycle_service import OrderLifecycleService


router = APIRouter(tags=["Orders"])


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(data: OrderCreate, db: DB):
    """
    Create a new order.

    Stock is reserved and referral commissions are recorded in the same
    transaction as the order.
    """
    order = await OrderService(db).create_order(data)
    return OrderResponse.model_validate(order)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    db: DB,
    page: Page,
    user_id: Optional[uuid.UUID] = Query(None),
    status: Optional[str] = Query(None, description="Order status, case-insensitive"),
):
    """Get paginated list of orders."""
    status = normalize_to_uppercase(status, VALID_ORDER_STATUSES)
    orders, total = await OrderService(db).get_orders(
        user_id=user_id,
        status=status,
        skip=page.skip,
        limit=page.limit,
    )
    return OrderListResponse(
        items=[OrderSummary.model_validate(o) for o in orders],
        total=total,
        page=page.page,
        limit=page.limit,
        pages=page.pages(total),
    )


@router.get("/number/{order_number}", response_model=OrderResponse)
async def get_order_by_number(order_number: str, db: DB):
    """Get order details by order number."""
    order = await OrderService(db).get_order_by_number(order_number)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: uuid.UUID, db: DB):
    """Get order details by ID."""
    order = await OrderService(db).get_order_by_id(order_id)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}/items", response_model=List[OrderItemResponse])
async def get_order_items(order_id: uuid.UUID, db: DB):
    items = await OrderService(db).get_order_items(order_id)
    return [OrderItemResponse.model_validate(item) for item in items]


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order(order_id: uuid.UUID, data: OrderUpdate, db: DB):
    """Partial update of status and/or shipping address."""
    order = await OrderService(db).update_order(order_id, data)
    return OrderResponse.model_validate(order)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(order_id: uuid.UUID, data: OrderStatusUpdate, db: DB):
    """Move the order along its lifecycle."""
    order = await OrderLifecycleService(db).update_order_status(
        order_id, data.status, notes=data.notes
    )
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: uuid.UUID, db: DB, data: Optional[OrderCancel] = None):
    """Cancel an order, restoring stock and cancelling commissions."""
    order = await OrderLifecycleService(db).cancel_order(
        order_id, reason=data.reason if data else None
    )
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/payment", response_model=OrderResponse)
async def process_payment(order_id: uuid.UUID, db: DB, data: Optional[PaymentConfirmation] = None):
    """Record a confirmed payment and settle pending commissions."""
    order = await OrderLifecycleService(db).process_payment(order_id, data)
    return OrderResponse.model_validate(order)
