from datetime import datetime

from pydantic import Field

from src.schemas.common import BaseSchema, TimestampSchema
from src.utils.constants import UserRole


class UserBase(BaseSchema):
    phone: str
    name: str
    email: str | None = None


class UserCreate(UserBase):
    password: str = Field(min_length=6)
    role: UserRole = UserRole.CLIENT
    balance: int = Field(default=0, ge=0)


class UserUpdate(BaseSchema):
    name: str | None = None
    email: str | None = None
    role: UserRole | None = None
    is_active: bool | None = None


class UserResponse(UserBase, TimestampSchema):
    id: int
    role: UserRole
    balance: int
    is_active: bool
    last_login_at: datetime | None = None


class UserListResponse(BaseSchema):
    users: list[UserResponse]
    total: int
    page: int
    limit: int


class BalanceAdjustment(BaseSchema):
    minutes: int


class BalanceResponse(BaseSchema):
    user_id: int
    balance: int
