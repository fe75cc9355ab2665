from typing import List, Optional
import uuid

from fastapi import APIRouter, Query, status

from shop.api.deps import DB, Page
from shop.core.enum_utils import normalize_to_uppercase, VALID_COMMISSION_STATUSES
from shop.schemas.distributor import (
    DistributorCreate,
    DistributorUpdate,
    DistributorResponse,
    DistributorListResponse,
    CommissionCreate,
    CommissionResponse,
    CommissionListResponse,
)
from shop.services.distributor_service import DistributorService


router = APIRouter(tags=["Distributors"])


# ==================== DISTRIBUTORS ====================

@router.post(
    "/distributors",
    response_model=DistributorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_distributor(data: DistributorCreate, db: DB):
    """Open a distributor account and issue its referral code."""
    distributor = await DistributorService(db).create_distributor(data)
    return DistributorResponse.model_validate(distributor)


@router.get("/distributors", response_model=DistributorListResponse)
async def list_distributors(
    db: DB,
    status: Optional[str] = Query(None, description="ACTIVE, INACTIVE or SUSPENDED"),
):
    distributors = await DistributorService(db).get_all_distributors(status=status)
    return DistributorListResponse(
        items=[DistributorResponse.model_validate(d) for d in distributors],
        total=len(distributors),
    )


@router.get("/distributors/by-user/{user_id}", response_model=DistributorResponse)
async def get_distributor_by_user(user_id: uuid.UUID, db: DB):
    distributor = await DistributorService(db).get_distributor_by_user_id(user_id)
    return DistributorResponse.model_validate(distributor)


@router.get("/distributors/by-code/{referral_code}", response_model=DistributorResponse)
async def get_distributor_by_code(referral_code: str, db: DB):
    distributor = await DistributorService(db).get_distributor_by_referral_code(referral_code)
    return DistributorResponse.model_validate(distributor)


@router.get("/distributors/{distributor_id}", response_model=DistributorResponse)
async def get_distributor(distributor_id: uuid.UUID, db: DB):
    distributor = await DistributorService(db).get_distributor_by_id(distributor_id)
    return DistributorResponse.model_validate(distributor)


@router.patch("/distributors/{distributor_id}", response_model=DistributorResponse)
async def update_distributor(distributor_id: uuid.UUID, data: DistributorUpdate, db: DB):
    distributor = await DistributorService(db).update_distributor(distributor_id, data)
    return DistributorResponse.model_validate(distributor)


@router.get("/distributors/{distributor_id}/commissions", response_model=CommissionListResponse)
async def get_distributor_commissions(
    distributor_id: uuid.UUID,
    db: DB,
    page: Page,
    status: Optional[str] = Query(None, description="PENDING, PAID or CANCELLED"),
):
    """Commission history of a distributor, newest first."""
    status = normalize_to_uppercase(status, VALID_COMMISSION_STATUSES)
    commissions, total = await DistributorService(db).get_distributor_commissions(
        distributor_id, status=status, skip=page.skip, limit=page.limit
    )
    return CommissionListResponse(
        items=[CommissionResponse.model_validate(c) for c in commissions],
        total=total,
        page=page.page,
        limit=page.limit,
        pages=page.pages(total),
    )


# ==================== COMMISSIONS ====================

@router.post(
    "/commissions",
    response_model=CommissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_commission(data: CommissionCreate, db: DB):
    commission = await DistributorService(db).create_commission(data)
    return CommissionResponse.model_validate(commission)


@router.post("/commissions/{commission_id}/pay", response_model=CommissionResponse)
async def pay_commission(commission_id: uuid.UUID, db: DB):
    commission = await DistributorService(db).pay_commission(commission_id)
    return CommissionResponse.model_validate(commission)


@router.get("/orders/{order_id}/commissions", response_model=List[CommissionResponse])
async def get_order_commissions(order_id: uuid.UUID, db: DB):
    commissions = await DistributorService(db).get_order_commissions(order_id)
    return [CommissionResponse.model_validate(c) for c in commissions]
