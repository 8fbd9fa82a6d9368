"""
Shared fixtures: in-memory database, temporary blob store, HTTP client
and an authenticated administrator.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.rate_limit import reset_memory_store
from app.core.security import create_access_token, hash_password
from app.core.storage import LocalFileStorage, get_storage
from app.main import app as fastapi_app
from app.modules.admins.models import Admin
from app.modules.card_applications.models import ApprovedApplication, CardApplication
from app.modules.payments.models import Payment

# Registered on Base.metadata by the imports above
TABLES = (Admin, CardApplication, ApprovedApplication, Payment)

ADMIN_PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def _clear_rate_limits():
    reset_memory_store()
    yield
    reset_memory_store()


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.rollback = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(str(tmp_path / "uploads"), max_file_size=1024 * 1024)


@pytest.fixture
def admin_password() -> str:
    return ADMIN_PASSWORD


@pytest_asyncio.fixture
async def admin(db_session) -> Admin:
    record = Admin(
        username="registrar",
        email="registrar@example.com",
        password_hash=hash_password(ADMIN_PASSWORD),
    )
    db_session.add(record)
    await db_session.commit()
    await db_session.refresh(record)
    return record


@pytest.fixture
def auth_headers(admin) -> dict[str, str]:
    token = create_access_token(
        subject=str(admin.id),
        additional_claims={"username": admin.username, "email": admin.email},
    )
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_maker, storage):
    """HTTP client against the app, wired to the in-memory database and temp storage."""

    async def _get_test_db():
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = _get_test_db
    fastapi_app.dependency_overrides[get_storage] = lambda: storage

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client

    fastapi_app.dependency_overrides.clear()
