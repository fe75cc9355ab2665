import uuid

from fastapi import APIRouter, status

from shop.api.deps import DB
from shop.schemas.cart import CartItemAdd, CartItemUpdate, CartItemResponse, CartResponse
from shop.services.cart_service import CartService


router = APIRouter(tags=["Cart"])


@router.get("/users/{user_id}/cart", response_model=CartResponse)
async def get_cart(user_id: uuid.UUID, db: DB):
    items, total_quantity, subtotal = await CartService(db).get_cart_summary(user_id)
    return CartResponse(
        items=[CartItemResponse.model_validate(i) for i in items],
        total_quantity=total_quantity,
        subtotal=subtotal,
    )


@router.get("/users/{user_id}/cart/count")
async def get_cart_count(user_id: uuid.UUID, db: DB):
    return {"count": await CartService(db).get_cart_items_count(user_id)}


@router.post(
    "/users/{user_id}/cart",
    response_model=CartItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_to_cart(user_id: uuid.UUID, data: CartItemAdd, db: DB):
    """Add a product; quantities merge if it is already in the cart."""
    item = await CartService(db).add_to_cart(user_id, data.product_id, data.quantity)
    return CartItemResponse.model_validate(item)


@router.delete("/users/{user_id}/cart")
async def clear_cart(user_id: uuid.UUID, db: DB):
    removed = await CartService(db).clear_cart(user_id)
    return {"removed": removed}


@router.patch("/cart/{item_id}", response_model=CartItemResponse)
async def update_cart_item(item_id: uuid.UUID, data: CartItemUpdate, db: DB):
    item = await CartService(db).update_cart_item(item_id, data.quantity)
    return CartItemResponse.model_validate(item)


@router.delete("/cart/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_from_cart(item_id: uuid.UUID, db: DB):
    await CartService(db).remove_from_cart(item_id)
