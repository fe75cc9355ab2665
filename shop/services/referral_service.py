"""
Referral commission resolution.

Two ways an order earns commission:

- ``ReferralChainStrategy`` walks the buyer's referral chain. The direct
  referrer earns ``REFERRAL_LEVEL_1_RATE`` and the stored second-level
  referrer earns ``REFERRAL_LEVEL_2_RATE``, both on the item total.
- ``ReferralCodeStrategy`` resolves a distributor referral code entered at
  checkout. An ACTIVE distributor earns its own ``commission_rate`` on the
  final amount. There is no second level.

Strategies only compute drafts; the order service persists them in the
order's transaction.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
import uuid
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shop.config import settings
from shop.models.distributor import Distributor, DistributorStatus
from shop.models.user import User

logger = logging.getLogger(__name__)

COMMISSION_QUANTUM = Decimal("0.0001")


def calculate_commission(amount: Decimal, rate: Decimal) -> Decimal:
    """amount x rate, rounded half up to four places."""
    return (Decimal(amount) * Decimal(rate)).quantize(COMMISSION_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass
class CommissionDraft:
    """Commission computed for an order that is not yet persisted."""
    beneficiary_id: uuid.UUID
    level: int
    commission_rate: Decimal
    commission_amount: Decimal
    distributor_id: Optional[uuid.UUID] = None


class CommissionStrategy(ABC):
    """Base class for commission resolution strategies."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @abstractmethod
    async def resolve(
        self,
        buyer: User,
        total_amount: Decimal,
        final_amount: Decimal,
    ) -> List[CommissionDraft]:
        """Return the commissions the order should carry, possibly none."""
        pass


class ReferralChainStrategy(CommissionStrategy):
    """Two-level commissions along the buyer's referral chain."""

    async def _get_distributor_id(self, user_id: uuid.UUID) -> Optional[uuid.UUID]:
        result = await self.db.execute(
            select(Distributor.id).where(Distributor.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def resolve(
        self,
        buyer: User,
        total_amount: Decimal,
        final_amount: Decimal,
    ) -> List[CommissionDraft]:
        chain = (
            (1, buyer.referrer_id, settings.REFERRAL_LEVEL_1_RATE),
            (2, buyer.secondary_referrer_id, settings.REFERRAL_LEVEL_2_RATE),
        )

        drafts: List[CommissionDraft] = []
        seen = {buyer.id}
        for level, referrer_id, rate in chain:
            if not referrer_id or referrer_id in seen:
                continue
            seen.add(referrer_id)

            referrer = await self.db.get(User, referrer_id)
            if not referrer:
                logger.warning(f"Level {level} referrer {referrer_id} of user {buyer.id} no longer exists")
                continue

            drafts.append(CommissionDraft(
                beneficiary_id=referrer.id,
                level=level,
                commission_rate=rate,
                commission_amount=calculate_commission(total_amount, rate),
                distributor_id=await self._get_distributor_id(referrer.id),
            ))

        return drafts


class ReferralCodeStrategy(CommissionStrategy):
    """Single commission for the distributor owning a referral code."""

    def __init__(self, db: AsyncSession, referral_code: str):
        super().__init__(db)
        self.referral_code = referral_code.strip()

    async def resolve(
        self,
        buyer: User,
        total_amount: Decimal,
        final_amount: Decimal,
    ) -> List[CommissionDraft]:
        result = await self.db.execute(
            select(Distributor).where(Distributor.referral_code == self.referral_code)
        )
        distributor = result.scalar_one_or_none()

        if not distributor:
            logger.warning(f"Distributor not found for referral code: {self.referral_code}")
            return []

        if distributor.status != DistributorStatus.ACTIVE.value:
            logger.warning(
                f"Distributor {self.referral_code} is not active (status: {distributor.status})"
            )
            return []

        if distributor.user_id == buyer.id:
            logger.warning(f"User {buyer.id} used own referral code {self.referral_code}")
            return []

        return [CommissionDraft(
            beneficiary_id=distributor.user_id,
            level=1,
            commission_rate=distributor.commission_rate,
            commission_amount=calculate_commission(final_amount, distributor.commission_rate),
            distributor_id=distributor.id,
        )]


def get_commission_strategy(db: AsyncSession, referral_code: Optional[str] = None) -> CommissionStrategy:
    """A supplied referral code takes precedence over the referral chain."""
    if referral_code and referral_code.strip():
        return ReferralCodeStrategy(db, referral_code)
    return ReferralChainStrategy(db)
