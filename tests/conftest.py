"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (StaticPool keeps the
   single connection alive, so every session sees the same tables).
2. The app's get_db dependency is overridden to hand out that session.
3. The app's magic-link store is swapped for an empty one per test.

Environment variables are set before any projecthub import so the
settings singleton is built for tests (cheap bcrypt, no Postgres).
"""

import os

os.environ.setdefault("PROJECTHUB_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PROJECTHUB_ENVIRONMENT", "test")
os.environ.setdefault("PROJECTHUB_BCRYPT_ROUNDS", "4")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from projecthub.auth.jwt import create_session_token
from projecthub.auth.magic_links import InMemoryMagicLinkStore
from projecthub.auth.password import hash_password
from projecthub.auth.roles import Role
from projecthub.db.engine import get_db
from projecthub.db.models import Base, Tenant, Template, User
from projecthub.main import app


TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a brand new in-memory database."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest.fixture()
def magic_links():
    """Empty pending magic-link store, installed on the app for this test."""
    previous = app.state.magic_link_store
    store = InMemoryMagicLinkStore()
    app.state.magic_link_store = store
    yield store
    app.state.magic_link_store = previous


@pytest_asyncio.fixture()
async def client(db_session, magic_links):
    """HTTP client with the app's get_db overridden for testing.

    Learn: Auth is NOT mocked — protected routes need a real session
    token, which the auth_headers fixture mints for any user.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Data helpers ───────────────────────────────────────


@pytest.fixture()
def make_tenant(db_session):
    async def _make(name: str = "Acme") -> Tenant:
        tenant = Tenant(name=name)
        db_session.add(tenant)
        await db_session.commit()
        return tenant

    return _make


@pytest.fixture()
def make_user(db_session):
    """Create a user. `password=None` leaves the account without a password."""

    async def _make(
        email: str,
        role: Role = Role.USER,
        tenant: Tenant | None = None,
        password: str | None = None,
        **fields,
    ) -> User:
        user = User(
            email=email,
            role=role,
            tenant_id=tenant.id if tenant else None,
            password_hash=hash_password(password) if password else None,
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture()
def make_template(db_session):
    async def _make(
        name: str, tenant: Tenant | None = None, is_global: bool = False
    ) -> Template:
        template = Template(
            name=name,
            content=f"{name} body",
            is_global=is_global,
            tenant_id=tenant.id if tenant else None,
        )
        db_session.add(template)
        await db_session.commit()
        return template

    return _make


@pytest.fixture()
def auth_headers():
    """Bearer headers carrying a session token for `user`."""

    def _headers(user: User) -> dict:
        token = create_session_token(
            user_id=user.id,
            email=user.email,
            tenant_id=user.tenant_id,
            role=user.role,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
