"""Saved shipping addresses."""
from typing import List, Optional
import uuid
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shop.core.exceptions import NotFoundError
from shop.models.address import Address
from shop.models.user import User
from shop.schemas.address import AddressCreate, AddressUpdate

logger = logging.getLogger(__name__)


def format_address(address: Address) -> str:
    """
    Flatten an address into the single line stored on orders.

    Example: ``"Alice Wong, 555-0100, California, Los Angeles, Downtown, 1 Main St, 90001"``
    """
    parts = [
        address.recipient_name,
        address.phone,
        address.province,
        address.city,
        address.district,
        address.street_address,
        address.postal_code,
    ]
    return ", ".join(p for p in parts if p)


class AddressService:
    """Service for a user's saved addresses."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ensure_user(self, user_id: uuid.UUID) -> None:
        if not await self.db.get(User, user_id):
            raise NotFoundError("User not found", {"user_id": str(user_id)})

    async def _clear_default(self, user_id: uuid.UUID, keep_id: Optional[uuid.UUID] = None) -> None:
        stmt = update(Address).where(Address.user_id == user_id, Address.is_default == True)  # noqa: E712
        if keep_id:
            stmt = stmt.where(Address.id != keep_id)
        await self.db.execute(
            stmt
            .values(is_default=False)
            .execution_options(synchronize_session=False)
        )

    async def get_user_addresses(self, user_id: uuid.UUID) -> List[Address]:
        """Default address first, then newest."""
        await self._ensure_user(user_id)
        result = await self.db.execute(
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_address_by_id(self, address_id: uuid.UUID) -> Address:
        address = await self.db.get(Address, address_id)
        if not address:
            raise NotFoundError("Address not found", {"address_id": str(address_id)})
        return address

    async def get_user_address(self, user_id: uuid.UUID, address_id: uuid.UUID) -> Address:
        """Address lookup scoped to its owner. Someone else's address counts as missing."""
        result = await self.db.execute(
            select(Address).where(Address.id == address_id, Address.user_id == user_id)
        )
        address = result.scalar_one_or_none()
        if not address:
            raise NotFoundError(
                "Address not found",
                {"address_id": str(address_id), "user_id": str(user_id)}
            )
        return address

    async def create_address(self, user_id: uuid.UUID, data: AddressCreate) -> Address:
        await self._ensure_user(user_id)

        if data.is_default:
            await self._clear_default(user_id)

        address = Address(user_id=user_id, **data.model_dump())
        self.db.add(address)
        await self.db.commit()
        await self.db.refresh(address)
        return address

    async def update_address(self, address_id: uuid.UUID, data: AddressUpdate) -> Address:
        address = await self.get_address_by_id(address_id)
        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("is_default"):
            await self._clear_default(address.user_id, keep_id=address.id)

        for field, value in update_data.items():
            setattr(address, field, value)

        await self.db.commit()
        await self.db.refresh(address)
        return address

    async def delete_address(self, address_id: uuid.UUID) -> None:
        address = await self.get_address_by_id(address_id)
        await self.db.delete(address)
        await self.db.commit()
