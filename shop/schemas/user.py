from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
import uuid

from shop.models.user import UserRole
from shop.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from shop.core.enum_utils import create_uppercase_validator, VALID_USER_ROLES


class UserBase(BaseModel):
    """Base user schema."""
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = None


class UserCreate(UserBase, BaseCreateSchema):
    """User registration schema."""
    password: str = Field(..., min_length=8, max_length=72)
    role: UserRole = UserRole.CONSUMER
    referrer_id: Optional[uuid.UUID] = None

    normalize_role = create_uppercase_validator('role', VALID_USER_ROLES)


class UserUpdate(BaseUpdateSchema):
    """Partial contact update. Username and referral links are fixed."""
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = None


class UserResponse(BaseResponseSchema):
    """User response schema."""
    id: uuid.UUID
    username: str
    email: str
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str
    role: str
    avatar_url: Optional[str] = None
    referrer_id: Optional[uuid.UUID] = None
    secondary_referrer_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


class UserBrief(BaseResponseSchema):
    """Brief user info for referral chains."""
    id: uuid.UUID
    username: str
    full_name: str
    role: str


class ReferralChainEntry(BaseModel):
    """One referrer above a user, level 1 is the direct referrer."""
    level: int
    user: UserBrief


class ReferralChainResponse(BaseModel):
    user_id: uuid.UUID
    chain: List[ReferralChainEntry]


class UserListResponse(BaseModel):
    """Paginated user list."""
    items: List[UserResponse]
    total: int
    page: int
    limit: int
    pages: int
