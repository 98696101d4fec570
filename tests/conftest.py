import os
from typing import AsyncGenerator

# Settings are read at import time, so the test environment goes first.
os.environ["DATABASE_URL"] = os.environ.get(
    "TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"
)
os.environ["ENVIRONMENT"] = "local"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["MANUAL_UPI"] = "learn@okaxis"
os.environ["MANUAL_UPI_QR"] = "https://cdn.example.com/upi-qr.png"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.session import get_async_db
from services.payments_service import models as _payment_models  # noqa: F401
from services.payments_service.app.main import app

get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine():
    """
    Engine with a freshly created schema for each test.
    SQLite in-memory by default; set TEST_DATABASE_URL to use Postgres.
    """
    db_url = settings.DATABASE_URL
    options = {"poolclass": StaticPool} if db_url.startswith("sqlite") else {}
    engine = create_async_engine(db_url, future=True, **options)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except OperationalError:
        await engine.dispose()
        pytest.skip("Database not available for tests")

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient bound to the app with the DB dependency overridden.
    """
    app.dependency_overrides[get_async_db] = lambda: db_session

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """
    Authenticate subsequent requests as the given user id.

    Admin rights still come from the users table, as in production.
    """

    def _login(user_id: str, email: str = "user@example.com") -> AuthUser:
        user = AuthUser(sub=user_id, email=email)

        async def _current_user():
            return user

        app.dependency_overrides[get_current_user] = _current_user
        return user

    yield _login
    app.dependency_overrides.pop(get_current_user, None)
