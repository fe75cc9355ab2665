"""
Distributor Service

Manages distributor accounts and their commissions:
- Account opening with a generated referral code
- Manual commission entries and standalone commission payout
- Commission history per distributor and per order
"""
from typing import List, Optional, Tuple
from datetime import datetime, timezone
import random
import string
import uuid
import logging

from sqlalchemy import select, func, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from shop.config import settings
from shop.core.enum_utils import get_enum_value
from shop.core.exceptions import NotFoundError, InvalidStateError, AlreadyExistsError
from shop.models.distributor import Distributor, DistributorStatus, Commission, CommissionStatus
from shop.models.order import Order
from shop.models.user import User, UserRole
from shop.schemas.distributor import DistributorCreate, DistributorUpdate, CommissionCreate
from shop.services.referral_service import calculate_commission

logger = logging.getLogger(__name__)


class DistributorService:
    """Service for distributor accounts and commissions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def generate_referral_code(self) -> str:
        """
        Generate unique referral code: prefix + 8 alphanumeric characters
        Example: REFK7X2M9QA
        """
        while True:
            suffix = ''.join(random.choices(string.ascii_uppercase + string.digits, k=8))
            code = f"{settings.REFERRAL_CODE_PREFIX}{suffix}"

            result = await self.db.execute(
                select(Distributor.id).where(Distributor.referral_code == code)
            )
            if not result.scalar_one_or_none():
                return code

    # ========================================================================
    # Distributor accounts
    # ========================================================================

    async def create_distributor(self, data: DistributorCreate) -> Distributor:
        """
        Open a distributor account for a user.

        A CONSUMER is promoted to the DISTRIBUTOR role; admins keep theirs.
        """
        user = await self.db.get(User, data.user_id)
        if not user:
            raise NotFoundError("User not found", {"user_id": str(data.user_id)})

        existing = await self.db.execute(
            select(Distributor.id).where(Distributor.user_id == data.user_id)
        )
        if existing.scalar_one_or_none():
            raise AlreadyExistsError(
                "User already has a distributor account",
                {"user_id": str(data.user_id)}
            )

        distributor = Distributor(
            user_id=user.id,
            referral_code=await self.generate_referral_code(),
            commission_rate=(
                data.commission_rate if data.commission_rate is not None
                else settings.DEFAULT_COMMISSION_RATE
            ),
            total_earnings=0,
            status=DistributorStatus.ACTIVE.value,
        )
        self.db.add(distributor)

        if user.role == UserRole.CONSUMER.value:
            user.role = UserRole.DISTRIBUTOR.value

        try:
            await self.db.flush()

            # Link pending commissions the user earned before opening the account
            linked = await self.db.execute(
                update(Commission)
                .where(
                    Commission.beneficiary_id == user.id,
                    Commission.distributor_id.is_(None),
                    Commission.status == CommissionStatus.PENDING.value,
                )
                .values(distributor_id=distributor.id)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"Integrity error creating distributor for user {data.user_id}: {e}")
            raise AlreadyExistsError(
                "User already has a distributor account",
                {"user_id": str(data.user_id)}
            ) from e

        await self.db.refresh(distributor)
        logger.info(
            f"Distributor {distributor.referral_code} created for user {user.username}, "
            f"{linked.rowcount} pending commissions linked"
        )
        return distributor

    async def update_distributor(self, distributor_id: uuid.UUID, data: DistributorUpdate) -> Distributor:
        distributor = await self.get_distributor_by_id(distributor_id)
        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("commission_rate") is not None:
            distributor.commission_rate = update_data["commission_rate"]
        if update_data.get("status") is not None:
            distributor.status = get_enum_value(update_data["status"])

        await self.db.commit()
        await self.db.refresh(distributor)
        return distributor

    async def get_distributor_by_id(self, distributor_id: uuid.UUID) -> Distributor:
        distributor = await self.db.get(Distributor, distributor_id, populate_existing=True)
        if not distributor:
            raise NotFoundError("Distributor not found", {"distributor_id": str(distributor_id)})
        return distributor

    async def get_distributor_by_user_id(self, user_id: uuid.UUID) -> Distributor:
        result = await self.db.execute(
            select(Distributor)
            .where(Distributor.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        distributor = result.scalar_one_or_none()
        if not distributor:
            raise NotFoundError("Distributor not found", {"user_id": str(user_id)})
        return distributor

    async def get_distributor_by_referral_code(self, referral_code: str) -> Distributor:
        result = await self.db.execute(
            select(Distributor)
            .where(Distributor.referral_code == referral_code)
            .execution_options(populate_existing=True)
        )
        distributor = result.scalar_one_or_none()
        if not distributor:
            raise NotFoundError("Distributor not found", {"referral_code": referral_code})
        return distributor

    async def get_all_distributors(self, status: Optional[str] = None) -> List[Distributor]:
        """All distributors, newest first."""
        stmt = select(Distributor).order_by(Distributor.created_at.desc())
        if status:
            stmt = stmt.where(Distributor.status == status.upper())
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    # ========================================================================
    # Commissions
    # ========================================================================

    async def get_commission_by_id(self, commission_id: uuid.UUID) -> Commission:
        commission = await self.db.get(Commission, commission_id, populate_existing=True)
        if not commission:
            raise NotFoundError("Commission not found", {"commission_id": str(commission_id)})
        return commission

    async def create_commission(self, data: CommissionCreate) -> Commission:
        """
        Record a commission for a distributor on an order.

        Without an explicit amount the commission is ``final_amount x rate``.
        A distributor can hold only one commission per order.
        """
        distributor = await self.get_distributor_by_id(data.distributor_id)

        order = await self.db.get(Order, data.order_id)
        if not order:
            raise NotFoundError("Order not found", {"order_id": str(data.order_id)})

        existing = await self.db.execute(
            select(Commission.id).where(
                Commission.order_id == order.id,
                Commission.beneficiary_id == distributor.user_id,
            )
        )
        if existing.scalar_one_or_none():
            raise AlreadyExistsError(
                "Commission already exists for this distributor and order",
                {"distributor_id": str(distributor.id), "order_id": str(order.id)}
            )

        amount = data.commission_amount
        if amount is None:
            amount = calculate_commission(order.final_amount, data.commission_rate)

        commission = Commission(
            order_id=order.id,
            beneficiary_id=distributor.user_id,
            distributor_id=distributor.id,
            level=data.level,
            commission_rate=data.commission_rate,
            commission_amount=amount,
            status=CommissionStatus.PENDING.value,
        )
        self.db.add(commission)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise AlreadyExistsError(
                "Commission already exists for this distributor and order",
                {"distributor_id": str(data.distributor_id), "order_id": str(data.order_id)}
            ) from e

        await self.db.refresh(commission)
        return commission

    async def pay_commission(self, commission_id: uuid.UUID) -> Commission:
        """Pay out one commission and add it to the distributor's earnings."""
        commission = await self.get_commission_by_id(commission_id)

        if commission.status == CommissionStatus.PAID.value:
            raise InvalidStateError(
                "Commission is already paid",
                {"commission_id": str(commission_id)}
            )
        if commission.status == CommissionStatus.CANCELLED.value:
            raise InvalidStateError(
                "Cannot pay a cancelled commission",
                {"commission_id": str(commission_id)}
            )

        # Guarded on status so a concurrent payout cannot count twice
        result = await self.db.execute(
            update(Commission)
            .where(
                Commission.id == commission.id,
                Commission.status == CommissionStatus.PENDING.value,
            )
            .values(status=CommissionStatus.PAID.value, paid_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise InvalidStateError(
                "Commission is already paid",
                {"commission_id": str(commission_id)}
            )

        if commission.distributor_id:
            await self.db.execute(
                update(Distributor)
                .where(Distributor.id == commission.distributor_id)
                .values(total_earnings=Distributor.total_earnings + commission.commission_amount)
                .execution_options(synchronize_session=False)
            )

        await self.db.commit()
        logger.info(f"Commission {commission_id} paid: {commission.commission_amount}")
        return await self.get_commission_by_id(commission_id)

    async def get_distributor_commissions(
        self,
        distributor_id: uuid.UUID,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Commission], int]:
        """
        Paginated commissions of a distributor, newest first.

        Includes commissions its user earned before the account was opened.
        """
        distributor = await self.get_distributor_by_id(distributor_id)

        filters = [or_(
            Commission.distributor_id == distributor.id,
            Commission.beneficiary_id == distributor.user_id,
        )]
        if status:
            filters.append(Commission.status == get_enum_value(status).upper())

        total = (await self.db.execute(
            select(func.count(Commission.id)).where(*filters)
        )).scalar() or 0

        result = await self.db.execute(
            select(Commission)
            .where(*filters)
            .order_by(Commission.created_at.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), total

    async def get_order_commissions(self, order_id: uuid.UUID) -> List[Commission]:
        if not await self.db.get(Order, order_id):
            raise NotFoundError("Order not found", {"order_id": str(order_id)})

        result = await self.db.execute(
            select(Commission)
            .where(Commission.order_id == order_id)
            .order_by(Commission.level)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
