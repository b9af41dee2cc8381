import logging

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.core.security import get_password_hash
from src.models.user import User
from src.schemas.user import UserCreate, UserListResponse, UserResponse, UserUpdate
from src.utils.constants import UserRole
from src.utils.qr import normalize_phone, phone_digits

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


async def get_user_by_id(db: AsyncSession, user_id: int) -> UserResponse:
    return UserResponse.model_validate(await get_user(db, user_id))


async def find_user_by_phone(db: AsyncSession, phone: str) -> User | None:
    """Match on digits only, so "+504 9999-0000" and "50499990000" are the same user."""
    digits = phone_digits(phone)
    if not digits:
        return None

    result = await db.execute(select(User).where(User.phone.in_([digits, f"+{digits}"])))
    return result.scalars().first()


async def get_user_by_phone(db: AsyncSession, phone: str) -> User:
    user = await find_user_by_phone(db, phone)
    if not user:
        raise NotFoundError("User not found")
    return user


async def get_users(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    role: UserRole | None = None,
) -> UserListResponse:
    query = select(User).order_by(User.created_at.desc())
    count_query = select(func.count(User.id))

    if role:
        query = query.where(User.role == role)
        count_query = count_query.where(User.role == role)

    result = await db.execute(count_query)
    total = result.scalar() or 0

    offset = (page - 1) * limit
    result = await db.execute(query.offset(offset).limit(limit))
    users = result.scalars().all()

    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        limit=limit,
    )


async def create_user(db: AsyncSession, data: UserCreate) -> UserResponse:
    if await find_user_by_phone(db, data.phone):
        raise ConflictError("Phone number already registered")

    user = User(
        phone=normalize_phone(data.phone),
        name=data.name,
        email=data.email,
        hashed_password=get_password_hash(data.password),
        role=data.role,
        balance=data.balance,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError("Phone number already registered") from exc
    await db.refresh(user)

    logger.info("Created %s user %s", user.role.value, user.id)
    return UserResponse.model_validate(user)


async def update_user(db: AsyncSession, user_id: int, data: UserUpdate) -> UserResponse:
    user = await get_user(db, user_id)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(user, field, value)

    await db.flush()
    await db.refresh(user)
    return UserResponse.model_validate(user)


async def deactivate_user(db: AsyncSession, user_id: int) -> None:
    user = await get_user(db, user_id)
    user.is_active = False
    await db.flush()


async def credit_balance(db: AsyncSession, user_id: int, minutes: int) -> int:
    user = await get_user(db, user_id)
    user.balance = User.balance + minutes
    await db.flush()
    await db.refresh(user)

    logger.info("Credited %d minutes to user %s, balance now %d", minutes, user_id, user.balance)
    return user.balance


async def debit_balance(db: AsyncSession, user_id: int, minutes: int) -> tuple[int, int]:
    """
    Debit ``minutes`` from the user's balance, clamping at zero.

    Returns ``(new_balance, shortfall)`` where ``shortfall`` is the part of
    the charge the balance could not cover. The debit never fails for lack
    of funds: a guard can always let the vehicle out.
    """
    user = await get_user(db, user_id)
    previous = user.balance
    user.balance = case((User.balance > minutes, User.balance - minutes), else_=0)
    await db.flush()
    await db.refresh(user)

    shortfall = max(0, minutes - previous)
    if shortfall:
        logger.warning(
            "User %s balance of %d minutes did not cover %d; absorbed shortfall of %d",
            user_id,
            previous,
            minutes,
            shortfall,
        )
    logger.info("Debited user %s, balance now %d", user_id, user.balance)
    return user.balance, shortfall


async def adjust_balance(db: AsyncSession, user_id: int, minutes: int) -> int:
    if minutes <= 0:
        raise ValidationError("Minutes to add must be positive")
    return await credit_balance(db, user_id, minutes)
