import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import AuthenticationError, ConflictError
from src.core.security import (
    create_access_token,
    create_refresh_token,
    get_password_hash,
    verify_password,
)
from src.models.base import utcnow
from src.models.user import User
from src.schemas.auth import LoginRequest, RegisterRequest, Token
from src.schemas.user import UserResponse
from src.services import user as user_service
from src.utils.constants import UserRole
from src.utils.qr import normalize_phone

logger = logging.getLogger(__name__)


def _issue_tokens(user: User) -> Token:
    return Token(
        access_token=create_access_token({"sub": str(user.id)}),
        refresh_token=create_refresh_token(user.id),
    )


async def register_user(db: AsyncSession, data: RegisterRequest) -> tuple[UserResponse, Token]:
    if await user_service.find_user_by_phone(db, data.phone):
        raise ConflictError("Phone number already registered")

    user = User(
        phone=normalize_phone(data.phone),
        name=data.name,
        email=data.email,
        hashed_password=get_password_hash(data.password),
        role=UserRole.CLIENT,
        balance=0,
        last_login_at=utcnow(),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("Registered client %s", user.id)
    return UserResponse.model_validate(user), _issue_tokens(user)


async def authenticate_user(db: AsyncSession, data: LoginRequest) -> Token:
    user = await user_service.find_user_by_phone(db, data.phone)

    if not user or not verify_password(data.password, user.hashed_password):
        raise AuthenticationError("Invalid phone or password")

    if not user.is_active:
        raise AuthenticationError("User account is disabled")

    user.last_login_at = utcnow()
    await db.flush()
    return _issue_tokens(user)


async def refresh_access_token(db: AsyncSession, user_id: int) -> Token:
    user = await db.get(User, user_id)

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is disabled")

    return _issue_tokens(user)
