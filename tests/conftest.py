from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from src.core.dependencies import get_db
from src.core.security import create_access_token, get_password_hash
from src.database import Base
from src.main import app
from src.models.user import User
from src.utils.constants import UserRole

TEST_DATABASE_URL = "sqlite+aiosqlite:///./test_minutepark.db"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
test_session_maker = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session_maker() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def headers_for(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user_id)})}"}


@pytest_asyncio.fixture
async def make_user(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory returning plain data, so tests never touch expired ORM state."""
    counter = {"n": 0}

    async def _make_user(
        role: UserRole = UserRole.CLIENT,
        balance: int = 0,
        name: str | None = None,
        phone: str | None = None,
        password: str = "secret123",
    ) -> dict[str, Any]:
        counter["n"] += 1
        user = User(
            phone=phone or f"+5049999{counter['n']:04d}",
            name=name or f"{role.value.title()} {counter['n']}",
            hashed_password=get_password_hash(password),
            role=role,
            balance=balance,
        )
        db_session.add(user)
        await db_session.commit()
        return {
            "id": user.id,
            "phone": user.phone,
            "name": user.name,
            "headers": headers_for(user.id),
        }

    return _make_user


@pytest_asyncio.fixture
async def client_user(make_user) -> dict[str, Any]:
    return await make_user(UserRole.CLIENT, balance=100, name="Ana Cliente")


@pytest_asyncio.fixture
async def guard_user(make_user) -> dict[str, Any]:
    return await make_user(UserRole.GUARD, name="Guardia Uno")


@pytest_asyncio.fixture
async def admin_user(make_user) -> dict[str, Any]:
    return await make_user(UserRole.ADMIN, name="Admin")
