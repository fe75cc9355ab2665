"""Tests for distributor accounts, referral codes and commission payout."""

import re
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError as PydanticValidationError

from shop.config import settings
from shop.core.exceptions import AlreadyExistsError, InvalidStateError, NotFoundError
from shop.models.distributor import CommissionStatus, DistributorStatus
from shop.models.user import UserRole
from shop.schemas.distributor import CommissionCreate, DistributorCreate, DistributorUpdate
from shop.schemas.order import OrderCreate, OrderItemCreate
from shop.services.distributor_service import DistributorService
from shop.services.order_lifecycle_service import OrderLifecycleService
from shop.services.order_service import OrderService
from shop.services.referral_service import (
    ReferralChainStrategy,
    ReferralCodeStrategy,
    calculate_commission,
    get_commission_strategy,
)
from shop.services.user_service import UserService


async def place_order(db, user, product, quantity=1):
    return await OrderService(db).create_order(OrderCreate(
        user_id=user.id,
        items=[OrderItemCreate(product_id=product.id, quantity=quantity)],
    ))


# ============================================================================
# Commission arithmetic
# ============================================================================


class TestCalculateCommission:
    @pytest.mark.parametrize(
        "amount,rate,expected",
        [
            ("199.98", "0.05", "9.9990"),
            ("199.98", "0.03", "5.9994"),
            ("69.98", "0.10", "6.9980"),
            ("0.01", "0.05", "0.0005"),
            ("0.001", "0.05", "0.0001"),  # 0.00005 rounds half up
            ("100.00", "0", "0.0000"),
        ],
    )
    def test_rounds_to_four_places(self, amount, rate, expected):
        assert calculate_commission(Decimal(amount), Decimal(rate)) == Decimal(expected)

    def test_strategy_selection(self):
        # Strategies only touch the session when resolving
        assert isinstance(get_commission_strategy(None), ReferralChainStrategy)
        assert isinstance(get_commission_strategy(None, "  "), ReferralChainStrategy)
        assert isinstance(get_commission_strategy(None, "REFABC"), ReferralCodeStrategy)


# ============================================================================
# Distributor accounts
# ============================================================================


class TestDistributorAccounts:
    @pytest.mark.asyncio
    async def test_create_generates_code_and_promotes_consumer(self, db, make_user):
        user = await make_user()

        distributor = await DistributorService(db).create_distributor(DistributorCreate(user_id=user.id))

        assert re.fullmatch(r"REF[A-Z0-9]{8}", distributor.referral_code)
        assert distributor.commission_rate == settings.DEFAULT_COMMISSION_RATE
        assert distributor.total_earnings == Decimal("0")
        assert distributor.status == DistributorStatus.ACTIVE.value
        refreshed = await UserService(db).get_user_by_id(user.id)
        assert refreshed.role == UserRole.DISTRIBUTOR.value

    @pytest.mark.asyncio
    async def test_admin_keeps_role(self, db, make_user):
        admin = await make_user(role=UserRole.ADMIN)

        await DistributorService(db).create_distributor(
            DistributorCreate(user_id=admin.id, commission_rate=Decimal("0.15"))
        )

        refreshed = await UserService(db).get_user_by_id(admin.id)
        assert refreshed.role == UserRole.ADMIN.value

    @pytest.mark.asyncio
    async def test_one_account_per_user(self, db, make_user):
        user = await make_user()
        service = DistributorService(db)
        await service.create_distributor(DistributorCreate(user_id=user.id))

        with pytest.raises(AlreadyExistsError):
            await service.create_distributor(DistributorCreate(user_id=user.id))

    @pytest.mark.asyncio
    async def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            await DistributorService(db).create_distributor(DistributorCreate(user_id=uuid4()))

    def test_rate_must_be_a_fraction(self):
        with pytest.raises(PydanticValidationError):
            DistributorCreate(user_id=uuid4(), commission_rate=Decimal("1.5"))
        with pytest.raises(PydanticValidationError):
            DistributorUpdate(commission_rate=Decimal("-0.01"))

    @pytest.mark.asyncio
    async def test_lookups(self, db, make_user, make_distributor):
        user = await make_user()
        distributor = await make_distributor(user, referral_code="REFLOOKUP")
        service = DistributorService(db)

        assert (await service.get_distributor_by_id(distributor.id)).id == distributor.id
        assert (await service.get_distributor_by_user_id(user.id)).id == distributor.id
        assert (await service.get_distributor_by_referral_code("REFLOOKUP")).id == distributor.id

        with pytest.raises(NotFoundError):
            await service.get_distributor_by_id(uuid4())
        with pytest.raises(NotFoundError):
            await service.get_distributor_by_user_id(uuid4())
        with pytest.raises(NotFoundError):
            await service.get_distributor_by_referral_code("REFMISSING")

    @pytest.mark.asyncio
    async def test_update_and_filter_by_status(self, db, make_user, make_distributor):
        active = await make_distributor(await make_user())
        other = await make_distributor(await make_user())
        service = DistributorService(db)

        updated = await service.update_distributor(
            other.id, DistributorUpdate(status="suspended", commission_rate=Decimal("0.2"))
        )

        assert updated.status == DistributorStatus.SUSPENDED.value
        assert updated.commission_rate == Decimal("0.2")
        active_ids = [d.id for d in await service.get_all_distributors(status="active")]
        assert active_ids == [active.id]
        assert len(await service.get_all_distributors()) == 2


# ============================================================================
# Commissions
# ============================================================================


class TestCommissions:
    @pytest.mark.asyncio
    async def test_manual_commission_defaults_to_final_amount_times_rate(
        self, db, make_user, make_product, make_distributor
    ):
        buyer = await make_user()
        distributor = await make_distributor(await make_user())
        product = await make_product(price="40.00")
        order = await place_order(db, buyer, product)

        commission = await DistributorService(db).create_commission(CommissionCreate(
            distributor_id=distributor.id,
            order_id=order.id,
            commission_rate=Decimal("0.10"),
        ))

        assert commission.commission_amount == Decimal("5.0000")
        assert commission.beneficiary_id == distributor.user_id
        assert commission.status == CommissionStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_explicit_amount_is_kept(self, db, make_user, make_product, make_distributor):
        buyer = await make_user()
        distributor = await make_distributor(await make_user())
        order = await place_order(db, buyer, await make_product())

        commission = await DistributorService(db).create_commission(CommissionCreate(
            distributor_id=distributor.id,
            order_id=order.id,
            commission_rate=Decimal("0.10"),
            commission_amount=Decimal("1.2345"),
            level=2,
        ))

        assert commission.commission_amount == Decimal("1.2345")
        assert commission.level == 2

    @pytest.mark.asyncio
    async def test_one_commission_per_beneficiary_and_order(
        self, db, make_user, make_product, make_distributor
    ):
        buyer = await make_user()
        distributor = await make_distributor(await make_user())
        order = await place_order(db, buyer, await make_product())
        service = DistributorService(db)
        data = CommissionCreate(
            distributor_id=distributor.id, order_id=order.id, commission_rate=Decimal("0.10")
        )
        await service.create_commission(data)

        with pytest.raises(AlreadyExistsError):
            await service.create_commission(data)

    @pytest.mark.asyncio
    async def test_chain_commission_blocks_manual_duplicate(
        self, db, make_user, make_product, make_distributor
    ):
        referrer = await make_user()
        distributor = await make_distributor(referrer)
        buyer = await make_user(referrer=referrer)
        order = await place_order(db, buyer, await make_product())

        with pytest.raises(AlreadyExistsError):
            await DistributorService(db).create_commission(CommissionCreate(
                distributor_id=distributor.id, order_id=order.id, commission_rate=Decimal("0.05")
            ))

    @pytest.mark.asyncio
    async def test_commission_for_unknown_order(self, db, make_user, make_distributor):
        distributor = await make_distributor(await make_user())

        with pytest.raises(NotFoundError):
            await DistributorService(db).create_commission(CommissionCreate(
                distributor_id=distributor.id, order_id=uuid4(), commission_rate=Decimal("0.10")
            ))

    @pytest.mark.asyncio
    async def test_pay_commission_once(self, db, make_user, make_product, make_distributor):
        buyer = await make_user()
        distributor = await make_distributor(await make_user())
        order = await place_order(db, buyer, await make_product(price="40.00"))
        service = DistributorService(db)
        commission = await service.create_commission(CommissionCreate(
            distributor_id=distributor.id, order_id=order.id, commission_rate=Decimal("0.10")
        ))
        commission_id = commission.id

        paid = await service.pay_commission(commission_id)
        assert paid.status == CommissionStatus.PAID.value
        assert paid.paid_at is not None

        with pytest.raises(InvalidStateError):
            await service.pay_commission(commission_id)

        refreshed = await service.get_distributor_by_id(distributor.id)
        assert refreshed.total_earnings == Decimal("5.0000")

    @pytest.mark.asyncio
    async def test_cancelled_commission_cannot_be_paid(
        self, db, make_user, make_product, make_distributor
    ):
        from shop.services.order_lifecycle_service import OrderLifecycleService

        referrer = await make_user()
        await make_distributor(referrer)
        buyer = await make_user(referrer=referrer)
        order = await place_order(db, buyer, await make_product())
        commission_id = order.commissions[0].id
        await OrderLifecycleService(db).cancel_order(order.id)

        with pytest.raises(InvalidStateError, match="cancelled"):
            await DistributorService(db).pay_commission(commission_id)

    @pytest.mark.asyncio
    async def test_commission_listings(self, db, referral_chain, make_product, make_distributor):
        buyer, level1, _ = referral_chain
        distributor = await make_distributor(level1)
        product = await make_product(stock=50)
        first = await place_order(db, buyer, product)
        await place_order(db, buyer, product)
        service = DistributorService(db)

        items, total = await service.get_distributor_commissions(distributor.id)
        assert total == 2
        assert all(c.distributor_id == distributor.id for c in items)

        _, paid_total = await service.get_distributor_commissions(distributor.id, status="paid")
        assert paid_total == 0

        by_order = await service.get_order_commissions(first.id)
        assert [c.level for c in by_order] == [1, 2]

        with pytest.raises(NotFoundError):
            await service.get_order_commissions(uuid4())
        with pytest.raises(NotFoundError):
            await service.get_distributor_commissions(uuid4())

    @pytest.mark.asyncio
    async def test_account_opened_after_referral_collects_pending_commission(
        self, db, make_user, make_product
    ):
        referrer = await make_user()
        buyer = await make_user(referrer=referrer)
        product = await make_product(price="100.00")
        order = await place_order(db, buyer, product)
        service = DistributorService(db)

        distributor = await service.create_distributor(DistributorCreate(user_id=referrer.id))
        await OrderLifecycleService(db).process_payment(order.id)

        refreshed = await service.get_distributor_by_id(distributor.id)
        assert refreshed.total_earnings == Decimal("5.0000")
        items, total = await service.get_distributor_commissions(distributor.id)
        assert total == 1
        assert items[0].distributor_id == distributor.id
        assert items[0].status == CommissionStatus.PAID.value

    @pytest.mark.asyncio
    async def test_commission_paid_before_account_is_listed_not_credited(
        self, db, make_user, make_product
    ):
        referrer = await make_user()
        buyer = await make_user(referrer=referrer)
        product = await make_product(price="100.00")
        order = await place_order(db, buyer, product)
        await OrderLifecycleService(db).process_payment(order.id)
        service = DistributorService(db)

        distributor = await service.create_distributor(DistributorCreate(user_id=referrer.id))

        assert (await service.get_distributor_by_id(distributor.id)).total_earnings == 0
        items, total = await service.get_distributor_commissions(distributor.id, status="paid")
        assert total == 1
        assert items[0].beneficiary_id == referrer.id
        assert items[0].distributor_id is None
