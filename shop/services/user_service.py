"""Users and the two-level referral graph."""
from typing import List, Optional, Tuple
import uuid
import logging

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from shop.core.enum_utils import get_enum_value
from shop.core.exceptions import NotFoundError, AlreadyExistsError
from shop.core.security import get_password_hash
from shop.models.user import User
from shop.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Service for user accounts and referral chain lookups."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", {"user_id": str(user_id)})
        return user

    async def get_users(
        self,
        role: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[User], int]:
        """Get paginated users, newest first."""
        stmt = select(User)
        count_stmt = select(func.count(User.id))

        if role:
            stmt = stmt.where(User.role == role.upper())
            count_stmt = count_stmt.where(User.role == role.upper())
        if search:
            search_filter = or_(
                User.username.ilike(f"%{search}%"),
                User.email.ilike(f"%{search}%"),
            )
            stmt = stmt.where(search_filter)
            count_stmt = count_stmt.where(search_filter)

        total = (await self.db.execute(count_stmt)).scalar() or 0
        stmt = stmt.order_by(User.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def create_user(self, data: UserCreate) -> User:
        """
        Register a user.

        When a referrer is given, the referrer's own referrer is copied into
        ``secondary_referrer_id``. The copy is never refreshed, so later
        changes to the referrer do not move existing attributions.
        """
        existing = await self.db.execute(
            select(User).where(
                or_(User.username == data.username, User.email == data.email)
            )
        )
        duplicate = existing.scalars().first()
        if duplicate:
            field = "username" if duplicate.username == data.username else "email"
            raise AlreadyExistsError(
                f"User with this {field} already exists",
                {field: getattr(data, field)}
            )

        secondary_referrer_id = None
        if data.referrer_id:
            referrer = await self.get_user_by_id(data.referrer_id)
            secondary_referrer_id = referrer.referrer_id

        user = User(
            username=data.username,
            email=data.email,
            phone=data.phone,
            first_name=data.first_name,
            last_name=data.last_name,
            avatar_url=data.avatar_url,
            password_hash=get_password_hash(data.password),
            role=get_enum_value(data.role),
            referrer_id=data.referrer_id,
            secondary_referrer_id=secondary_referrer_id,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(f"User {user.username} registered (referrer={user.referrer_id})")
        return user

    async def update_user(self, user_id: uuid.UUID, data: UserUpdate) -> User:
        user = await self.get_user_by_id(user_id)
        update_data = data.model_dump(exclude_unset=True)

        new_email = update_data.get("email")
        if new_email and new_email != user.email:
            taken = await self.db.execute(
                select(User.id).where(User.email == new_email, User.id != user_id)
            )
            if taken.scalar_one_or_none():
                raise AlreadyExistsError(
                    "User with this email already exists",
                    {"email": new_email}
                )

        for field, value in update_data.items():
            setattr(user, field, value)

        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def get_referral_chain(self, user_id: uuid.UUID) -> List[Tuple[int, User]]:
        """
        Referrers above a user as ``(level, user)`` pairs, level 1 first.

        Level 2 comes from the stored snapshot, matching what order
        commissions use.
        """
        user = await self.get_user_by_id(user_id)

        chain: List[Tuple[int, User]] = []
        for level, referrer_id in ((1, user.referrer_id), (2, user.secondary_referrer_id)):
            if not referrer_id:
                continue
            referrer = await self.db.get(User, referrer_id)
            if referrer:
                chain.append((level, referrer))
        return chain
