"""Tests for saved addresses and the shopping cart."""

from decimal import Decimal
from uuid import uuid4

import pytest

from shop.core.exceptions import InvalidStateError, NotFoundError
from shop.schemas.address import AddressCreate, AddressUpdate
from shop.services.address_service import AddressService, format_address
from shop.services.cart_service import CartService


def address_payload(**overrides) -> AddressCreate:
    data = {
        "recipient_name": "Bo Chen",
        "phone": "555-0199",
        "province": "Oregon",
        "city": "Portland",
        "district": "Pearl",
        "street_address": "9 Oak Ave",
    }
    data.update(overrides)
    return AddressCreate(**data)


class TestAddresses:
    @pytest.mark.asyncio
    async def test_format_skips_empty_parts(self, db, make_user):
        user = await make_user()
        address = await AddressService(db).create_address(user.id, address_payload())

        assert format_address(address) == "Bo Chen, 555-0199, Oregon, Portland, Pearl, 9 Oak Ave"

    @pytest.mark.asyncio
    async def test_single_default(self, db, make_user):
        user = await make_user()
        service = AddressService(db)
        first = await service.create_address(user.id, address_payload(is_default=True))
        second = await service.create_address(user.id, address_payload(city="Salem", is_default=True))

        addresses = await service.get_user_addresses(user.id)

        assert [a.id for a in addresses if a.is_default] == [second.id]
        assert addresses[0].id == second.id
        assert first.id in [a.id for a in addresses]

    @pytest.mark.asyncio
    async def test_update_to_default_keeps_itself(self, db, make_user):
        user = await make_user()
        service = AddressService(db)
        first = await service.create_address(user.id, address_payload(is_default=True))
        second = await service.create_address(user.id, address_payload(city="Salem"))

        updated = await service.update_address(second.id, AddressUpdate(is_default=True))

        assert updated.is_default is True
        defaults = [a.id for a in await service.get_user_addresses(user.id) if a.is_default]
        assert defaults == [second.id]
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_owner_scoped_lookup_and_delete(self, db, make_user):
        owner = await make_user()
        stranger = await make_user()
        service = AddressService(db)
        address = await service.create_address(owner.id, address_payload())

        assert (await service.get_user_address(owner.id, address.id)).id == address.id
        with pytest.raises(NotFoundError):
            await service.get_user_address(stranger.id, address.id)

        await service.delete_address(address.id)
        with pytest.raises(NotFoundError):
            await service.get_address_by_id(address.id)

    @pytest.mark.asyncio
    async def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            await AddressService(db).create_address(uuid4(), address_payload())


class TestCart:
    @pytest.mark.asyncio
    async def test_add_merges_quantity(self, db, make_user, make_product):
        user = await make_user()
        product = await make_product(price="4.50")
        service = CartService(db)

        await service.add_to_cart(user.id, product.id, 1)
        item = await service.add_to_cart(user.id, product.id, 2)

        assert item.quantity == 3
        assert item.product.id == product.id
        assert await service.get_cart_items_count(user.id) == 3

    @pytest.mark.asyncio
    async def test_summary_uses_current_prices(self, db, make_user, make_product):
        user = await make_user()
        pen = await make_product(price="1.25")
        pad = await make_product(price="3.00")
        service = CartService(db)
        await service.add_to_cart(user.id, pen.id, 4)
        await service.add_to_cart(user.id, pad.id, 1)

        pad.price = Decimal("3.50")
        await db.commit()

        items, total_quantity, subtotal = await service.get_cart_summary(user.id)
        assert len(items) == 2
        assert total_quantity == 5
        assert subtotal == Decimal("8.50")

    @pytest.mark.asyncio
    async def test_inactive_product_rejected(self, db, make_user, make_product):
        user = await make_user()
        product = await make_product(is_active=False)

        with pytest.raises(InvalidStateError):
            await CartService(db).add_to_cart(user.id, product.id, 1)

    @pytest.mark.asyncio
    async def test_unknown_product_and_user(self, db, make_user, make_product):
        user = await make_user()
        product = await make_product()
        service = CartService(db)

        with pytest.raises(NotFoundError):
            await service.add_to_cart(user.id, uuid4(), 1)
        with pytest.raises(NotFoundError):
            await service.add_to_cart(uuid4(), product.id, 1)

    @pytest.mark.asyncio
    async def test_update_remove_and_clear(self, db, make_user, make_product):
        user = await make_user()
        first = await make_product()
        second = await make_product()
        service = CartService(db)
        line = await service.add_to_cart(user.id, first.id, 1)
        await service.add_to_cart(user.id, second.id, 2)

        updated = await service.update_cart_item(line.id, 5)
        assert updated.quantity == 5

        await service.remove_from_cart(line.id)
        assert await service.get_cart_items_count(user.id) == 2

        assert await service.clear_cart(user.id) == 1
        assert await service.get_user_cart(user.id) == []

        with pytest.raises(NotFoundError):
            await service.update_cart_item(line.id, 1)
