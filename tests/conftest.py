"""
Shared pytest fixtures for the shop backend tests.

- Database fixtures: a fresh SQLite file per test (engine, session_factory, db)
- API fixture: httpx client bound to the app with get_db overridden
- Factories: make_category, make_product, make_user, make_distributor, make_address
"""

from collections.abc import AsyncGenerator
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import shop.models  # noqa: F401  registers all tables
from shop.database import Base, get_db
from shop.main import app
from shop.models.address import Address
from shop.models.category import Category
from shop.models.distributor import Distributor, DistributorStatus
from shop.models.product import Product, ProductType
from shop.models.user import User, UserRole


# ============================================================================
# Database fixtures
# ============================================================================


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Async engine on a throwaway SQLite database file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'shop_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, every request gets its own session."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================================
# Factories
# ============================================================================


@pytest_asyncio.fixture
async def make_category(db):
    async def _make(name: str = "General", parent: Optional[Category] = None) -> Category:
        category = Category(name=name, parent_id=parent.id if parent else None)
        db.add(category)
        await db.commit()
        return category

    return _make


@pytest_asyncio.fixture
async def category(make_category) -> Category:
    return await make_category()


@pytest_asyncio.fixture
async def make_product(db, category):
    async def _make(
        name: Optional[str] = None,
        price: str = "10.00",
        stock: int = 10,
        product_type: ProductType = ProductType.PHYSICAL,
        is_active: bool = True,
    ) -> Product:
        suffix = uuid4().hex[:8]
        product = Product(
            name=name or f"Product {suffix}",
            sku=f"SKU-{suffix}",
            category_id=category.id,
            product_type=product_type.value,
            price=Decimal(price),
            stock_quantity=stock,
            is_active=is_active,
        )
        db.add(product)
        await db.commit()
        return product

    return _make


@pytest_asyncio.fixture
async def make_user(db):
    """Users are inserted directly; the referral snapshot mirrors UserService.create_user."""

    async def _make(
        username: Optional[str] = None,
        referrer: Optional[User] = None,
        role: UserRole = UserRole.CONSUMER,
    ) -> User:
        username = username or f"user_{uuid4().hex[:8]}"
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash="not-a-real-hash",
            role=role.value,
            referrer_id=referrer.id if referrer else None,
            secondary_referrer_id=referrer.referrer_id if referrer else None,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def make_distributor(db):
    async def _make(
        user: User,
        rate: str = "0.10",
        status: DistributorStatus = DistributorStatus.ACTIVE,
        referral_code: Optional[str] = None,
    ) -> Distributor:
        distributor = Distributor(
            user_id=user.id,
            referral_code=referral_code or f"REF{uuid4().hex[:8].upper()}",
            commission_rate=Decimal(rate),
            total_earnings=Decimal("0"),
            status=status.value,
        )
        db.add(distributor)
        await db.commit()
        return distributor

    return _make


@pytest_asyncio.fixture
async def make_address(db):
    async def _make(user: User, is_default: bool = False, city: str = "Los Angeles") -> Address:
        address = Address(
            user_id=user.id,
            recipient_name="Alice Wong",
            phone="555-0100",
            province="California",
            city=city,
            district="Downtown",
            street_address="1 Main St",
            postal_code="90001",
            is_default=is_default,
        )
        db.add(address)
        await db.commit()
        return address

    return _make


@pytest_asyncio.fixture
async def referral_chain(make_user):
    """buyer -> level1 -> level2: buyer was referred by level1, who was referred by level2."""
    level2 = await make_user("level2")
    level1 = await make_user("level1", referrer=level2)
    buyer = await make_user("buyer", referrer=level1)
    return buyer, level1, level2
