from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from shop.api.deps import DB, Page
from shop.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    UserBrief,
    UserListResponse,
    ReferralChainEntry,
    ReferralChainResponse,
)
from shop.schemas.order import OrderListResponse, OrderSummary
from shop.services.user_service import UserService
from shop.services.order_service import OrderService


router = APIRouter(tags=["Users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(data: UserCreate, db: DB):
    """Register a user, optionally under a referrer."""
    user = await UserService(db).create_user(data)
    return UserResponse.model_validate(user)


@router.get("", response_model=UserListResponse)
async def list_users(
    db: DB,
    page: Page,
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Username or email contains"),
):
    users, total = await UserService(db).get_users(
        role=role, search=search, skip=page.skip, limit=page.limit
    )
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page.page,
        limit=page.limit,
        pages=page.pages(total),
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: uuid.UUID, db: DB):
    user = await UserService(db).get_user_by_id(user_id)
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(user_id: uuid.UUID, data: UserUpdate, db: DB):
    user = await UserService(db).update_user(user_id, data)
    return UserResponse.model_validate(user)


@router.get("/{user_id}/referral-chain", response_model=ReferralChainResponse)
async def get_referral_chain(user_id: uuid.UUID, db: DB):
    """Direct referrer and second-level referrer of a user."""
    chain = await UserService(db).get_referral_chain(user_id)
    return ReferralChainResponse(
        user_id=user_id,
        chain=[
            ReferralChainEntry(level=level, user=UserBrief.model_validate(referrer))
            for level, referrer in chain
        ],
    )


@router.get("/{user_id}/orders", response_model=OrderListResponse)
async def get_user_orders(user_id: uuid.UUID, db: DB, page: Page):
    """Orders placed by a user, newest first."""
    orders, total = await OrderService(db).get_user_orders(
        user_id, skip=page.skip, limit=page.limit
    )
    return OrderListResponse(
        items=[OrderSummary.model_validate(o) for o in orders],
        total=total,
        page=page.page,
        limit=page.limit,
        pages=page.pages(total),
    )
