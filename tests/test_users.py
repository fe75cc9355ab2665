"""Tests for user registration and the referral graph."""

from uuid import uuid4

import pytest
from pydantic import ValidationError as PydanticValidationError

from shop.core.exceptions import AlreadyExistsError, NotFoundError
from shop.core.security import verify_password
from shop.models.user import UserRole
from shop.schemas.user import UserCreate, UserUpdate
from shop.services.user_service import UserService


def registration(username: str, referrer_id=None, **extra) -> UserCreate:
    return UserCreate(
        username=username,
        email=f"{username}@example.com",
        password="s3cret-pass",
        referrer_id=referrer_id,
        **extra,
    )


class TestRegistration:
    @pytest.mark.asyncio
    async def test_password_is_hashed(self, db):
        user = await UserService(db).create_user(registration("carol"))

        assert user.password_hash != "s3cret-pass"
        assert verify_password("s3cret-pass", user.password_hash)
        assert not verify_password("wrong-pass", user.password_hash)
        assert user.role == UserRole.CONSUMER.value

    @pytest.mark.asyncio
    async def test_role_is_normalized(self, db):
        user = await UserService(db).create_user(registration("dave", role="admin"))

        assert user.role == UserRole.ADMIN.value

    @pytest.mark.asyncio
    async def test_second_level_referrer_is_snapshotted(self, db):
        service = UserService(db)
        top = await service.create_user(registration("top"))
        middle = await service.create_user(registration("middle", referrer_id=top.id))
        bottom = await service.create_user(registration("bottom", referrer_id=middle.id))

        assert middle.secondary_referrer_id is None
        assert bottom.referrer_id == middle.id
        assert bottom.secondary_referrer_id == top.id

    @pytest.mark.asyncio
    async def test_unknown_referrer(self, db):
        with pytest.raises(NotFoundError):
            await UserService(db).create_user(registration("eve", referrer_id=uuid4()))

    @pytest.mark.asyncio
    async def test_duplicate_username_and_email(self, db):
        service = UserService(db)
        await service.create_user(registration("frank"))

        with pytest.raises(AlreadyExistsError, match="username"):
            await service.create_user(registration("frank"))

        clash = UserCreate(username="frank2", email="frank@example.com", password="s3cret-pass")
        with pytest.raises(AlreadyExistsError, match="email"):
            await service.create_user(clash)

    def test_short_password_rejected(self):
        with pytest.raises(PydanticValidationError):
            UserCreate(username="gina", email="gina@example.com", password="short")


class TestUserQueries:
    @pytest.mark.asyncio
    async def test_update_contact_fields(self, db, make_user):
        user = await make_user()

        updated = await UserService(db).update_user(
            user.id, UserUpdate(first_name="Hana", last_name="Ito")
        )

        assert updated.full_name == "Hana Ito"
        assert updated.referrer_id is None

    @pytest.mark.asyncio
    async def test_update_to_taken_email(self, db, make_user):
        await make_user("taken")
        user = await make_user()

        with pytest.raises(AlreadyExistsError):
            await UserService(db).update_user(user.id, UserUpdate(email="taken@example.com"))

    @pytest.mark.asyncio
    async def test_list_filters(self, db, make_user):
        await make_user("ivan")
        await make_user("judy", role=UserRole.ADMIN)
        service = UserService(db)

        admins, total = await service.get_users(role="admin")
        assert total == 1
        assert admins[0].username == "judy"

        _, found = await service.get_users(search="iva")
        assert found == 1

    @pytest.mark.asyncio
    async def test_referral_chain(self, db, referral_chain):
        buyer, level1, level2 = referral_chain
        service = UserService(db)

        chain = await service.get_referral_chain(buyer.id)

        assert [(level, u.id) for level, u in chain] == [(1, level1.id), (2, level2.id)]
        assert [(level, u.id) for level, u in await service.get_referral_chain(level1.id)] == [
            (1, level2.id)
        ]
        assert await service.get_referral_chain(level2.id) == []

    @pytest.mark.asyncio
    async def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            await UserService(db).get_user_by_id(uuid4())
        with pytest.raises(NotFoundError):
            await UserService(db).get_referral_chain(uuid4())
