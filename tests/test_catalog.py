"""Tests for categories, products and stock adjustments."""

from decimal import Decimal
from uuid import uuid4

import pytest

from shop.core.exceptions import (
    AlreadyExistsError,
    InsufficientInventoryError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from shop.models.product import ProductType
from shop.schemas.category import CategoryCreate, CategoryUpdate
from shop.schemas.product import ProductCreate, ProductUpdate
from shop.services.catalog_service import CatalogService


def product_payload(category_id, **overrides) -> ProductCreate:
    data = {
        "name": "Notebook",
        "sku": f"NB-{uuid4().hex[:6]}",
        "category_id": category_id,
        "price": Decimal("12.50"),
        "stock_quantity": 20,
    }
    data.update(overrides)
    return ProductCreate(**data)


class TestCategories:
    @pytest.mark.asyncio
    async def test_create_and_nest(self, db):
        service = CatalogService(db)
        parent = await service.create_category(CategoryCreate(name="Stationery"))
        child = await service.create_category(CategoryCreate(name="Paper", parent_id=parent.id))

        assert child.parent_id == parent.id
        names = [c.name for c in await service.get_categories()]
        assert set(names) == {"Stationery", "Paper"}

    @pytest.mark.asyncio
    async def test_unknown_parent(self, db):
        with pytest.raises(NotFoundError):
            await CatalogService(db).create_category(CategoryCreate(name="Orphan", parent_id=uuid4()))

    @pytest.mark.asyncio
    async def test_category_cannot_parent_itself(self, category, db):
        with pytest.raises(ValidationError):
            await CatalogService(db).update_category(category.id, CategoryUpdate(parent_id=category.id))

    @pytest.mark.asyncio
    async def test_soft_delete_hides_from_active_listing(self, category, db):
        service = CatalogService(db)

        deleted = await service.delete_category(category.id)

        assert deleted.is_active is False
        assert await service.get_categories() == []
        assert [c.id for c in await service.get_categories(is_active=None)] == [category.id]


class TestProducts:
    @pytest.mark.asyncio
    async def test_create_normalizes_type(self, category, db):
        product = await CatalogService(db).create_product(
            product_payload(category.id, product_type="virtual")
        )

        assert product.product_type == ProductType.VIRTUAL.value
        assert product.is_physical is False

    @pytest.mark.asyncio
    async def test_duplicate_sku(self, category, db):
        service = CatalogService(db)
        await service.create_product(product_payload(category.id, sku="DUP-1"))

        with pytest.raises(AlreadyExistsError):
            await service.create_product(product_payload(category.id, sku="DUP-1"))

    @pytest.mark.asyncio
    async def test_unknown_category(self, db):
        with pytest.raises(NotFoundError):
            await CatalogService(db).create_product(product_payload(uuid4()))

    @pytest.mark.asyncio
    async def test_filters_and_search(self, db, make_product):
        await make_product(name="Red Pen", product_type=ProductType.PHYSICAL)
        await make_product(name="E-book", product_type=ProductType.VIRTUAL)
        await make_product(name="Blue Pen", is_active=False)
        service = CatalogService(db)

        pens, total = await service.get_products(search="pen")
        assert total == 2
        assert {p.name for p in pens} == {"Red Pen", "Blue Pen"}

        _, active = await service.get_products(is_active=True)
        assert active == 2

        virtual, _ = await service.get_products(product_type="virtual")
        assert [p.name for p in virtual] == ["E-book"]

    @pytest.mark.asyncio
    async def test_partial_update(self, db, make_product):
        product = await make_product(price="10.00")

        updated = await CatalogService(db).update_product(
            product.id, ProductUpdate(price=Decimal("11.00"))
        )

        assert updated.price == Decimal("11.00")
        assert updated.name == product.name


class TestInventory:
    @pytest.mark.asyncio
    async def test_restock_and_write_off(self, db, make_product):
        product = await make_product(stock=5)
        service = CatalogService(db)

        assert (await service.update_inventory(product.id, 10)).stock_quantity == 15
        assert (await service.update_inventory(product.id, -15)).stock_quantity == 0

    @pytest.mark.asyncio
    async def test_physical_stock_cannot_go_negative(self, db, make_product):
        product = await make_product(stock=2)

        with pytest.raises(InvalidStateError):
            await CatalogService(db).update_inventory(product.id, -3)

        await db.refresh(product)
        assert product.stock_quantity == 2

    @pytest.mark.asyncio
    async def test_virtual_stock_cannot_go_negative(self, db, make_product):
        product = await make_product(stock=1, product_type=ProductType.VIRTUAL)
        product_id = product.id
        service = CatalogService(db)

        with pytest.raises(InvalidStateError):
            await service.update_inventory(product_id, -5)

        assert (await service.get_product_by_id(product_id)).stock_quantity == 1
        assert (await service.update_inventory(product_id, -1)).stock_quantity == 0

    @pytest.mark.asyncio
    async def test_reserve_is_conditional(self, db, make_product):
        product = await make_product(stock=3)
        service = CatalogService(db)

        await service.reserve_stock(product, 2)
        with pytest.raises(InsufficientInventoryError) as exc_info:
            await service.reserve_stock(product, 2)
        await db.commit()

        assert exc_info.value.available == 1
        assert (await service.get_product_by_id(product.id)).stock_quantity == 1

    @pytest.mark.asyncio
    async def test_restore_is_additive(self, db, make_product):
        product = await make_product(stock=3)
        service = CatalogService(db)

        await service.restore_stock(product, 4)
        await db.commit()

        assert (await service.get_product_by_id(product.id)).stock_quantity == 7

    @pytest.mark.asyncio
    async def test_virtual_reserve_is_a_no_op(self, db, make_product):
        product = await make_product(stock=0, product_type=ProductType.VIRTUAL)
        service = CatalogService(db)

        await service.reserve_stock(product, 100)
        await db.commit()

        assert (await service.get_product_by_id(product.id)).stock_quantity == 0
