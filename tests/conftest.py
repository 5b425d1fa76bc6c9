"""
Pytest configuration and fixtures for OrgTree tests.

Provides fixtures for:
- Database engine, session factory and session
- Test client
- Test users, organization and memberships
- JWT tokens and CSRF headers
"""

from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from orgtree.config.settings import get_settings
from orgtree.database import get_db
from orgtree.main import app
from orgtree.middleware.csrf import get_csrf_service
from orgtree.models import (
    Base,
    OrgRole,
    Organization,
    OrganizationMember,
    SystemRole,
    User,
    UserIdentity,
)
from orgtree.repositories import SQLAlchemyOrgRepository
from orgtree.security import create_access_token


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create test database engine (file-based SQLite so tables persist across connections)."""
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'test_db.sqlite'}"
    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    """Session factory bound to the test engine."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def repository(test_db: AsyncSession) -> SQLAlchemyOrgRepository:
    """Repository over the test session."""
    return SQLAlchemyOrgRepository(test_db)


async def _create_user(
    session: AsyncSession, email: str, name: str, system_role: SystemRole = SystemRole.USER
) -> User:
    user = User(email=email, name=name, system_role=system_role)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def owner_user(test_db: AsyncSession) -> User:
    """Create the organization creator."""
    return await _create_user(test_db, "owner@example.com", "Olivia Owner")


@pytest_asyncio.fixture
async def recipient_user(test_db: AsyncSession) -> User:
    """Create a user who will receive ownership."""
    return await _create_user(test_db, "recipient@example.com", "Riley Recipient")


@pytest_asyncio.fixture
async def viewer_user(test_db: AsyncSession) -> User:
    """Create a user who will hold a viewer membership."""
    return await _create_user(test_db, "viewer@example.com", "Val Viewer")


@pytest_asyncio.fixture
async def outsider_user(test_db: AsyncSession) -> User:
    """Create a user with no relationship to the organization."""
    return await _create_user(test_db, "outsider@example.com", "Oscar Outsider")


@pytest_asyncio.fixture
async def superuser(test_db: AsyncSession) -> User:
    """Create a superuser."""
    return await _create_user(test_db, "root@example.com", "Sam Super", SystemRole.SUPERUSER)


@pytest_asyncio.fixture
async def test_organization(test_db: AsyncSession, owner_user: User) -> Organization:
    """Create an organization with no membership rows (creator rule only)."""
    org = Organization(name="Acme Family Tree", created_by_id=owner_user.id)
    test_db.add(org)
    await test_db.commit()
    await test_db.refresh(org)
    return org


@pytest_asyncio.fixture
async def viewer_membership(
    test_db: AsyncSession, test_organization: Organization, viewer_user: User, owner_user: User
) -> OrganizationMember:
    """Give viewer_user a viewer membership."""
    member = OrganizationMember(
        organization_id=test_organization.id,
        user_id=viewer_user.id,
        role=OrgRole.VIEWER,
        added_by_id=owner_user.id,
    )
    test_db.add(member)
    await test_db.commit()
    await test_db.refresh(member)
    return member


@pytest.fixture
def owner_identity(owner_user: User) -> UserIdentity:
    return UserIdentity.from_user(owner_user)


@pytest.fixture
def recipient_identity(recipient_user: User) -> UserIdentity:
    return UserIdentity.from_user(recipient_user)


@pytest.fixture
def viewer_identity(viewer_user: User) -> UserIdentity:
    return UserIdentity.from_user(viewer_user)


@pytest.fixture
def outsider_identity(outsider_user: User) -> UserIdentity:
    return UserIdentity.from_user(outsider_user)


@pytest.fixture
def superuser_identity(superuser: User) -> UserIdentity:
    return UserIdentity.from_user(superuser)


@pytest.fixture
def csrf_headers() -> dict:
    """Matching CSRF header and cookie for state-changing requests."""
    settings = get_settings()
    token = get_csrf_service().issue().signed_token
    return {
        settings.csrf_header_name: token,
        "Cookie": f"{settings.csrf_cookie_name}={token}",
    }


@pytest.fixture
def auth_headers(csrf_headers: dict) -> Callable[..., dict]:
    """Build request headers for a user: bearer token plus CSRF by default."""

    def _build(user: UserIdentity, csrf: bool = True) -> dict:
        headers = {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}
        if csrf:
            headers.update(csrf_headers)
        return headers

    return _build


@pytest_asyncio.fixture
async def client(test_db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database session override."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
