"""
Pytest configuration and shared fixtures for backend tests.
"""

import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional
from uuid import uuid4

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import after path is set
from core.roles import ProjectRole
from core.security import TokenService
from infrastructure.config import get_settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import Base, Project, ProjectMember, User

settings = get_settings()
token_service = TokenService.from_settings(settings)


# Database URL for testing (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


def auth_headers_for(user_id: str) -> dict:
    """Bearer headers for a user id."""
    access_token = token_service.create_access_token(user_id=user_id)
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory creating users. Returns the committed ``User``."""

    async def _make_user(
        email: str,
        name: Optional[str] = None,
        plan: str = "FREE",
        status: str = "ACTIVE",
        end_date: Optional[datetime] = None,
    ) -> User:
        user = User(
            id=str(uuid4()),
            email=email,
            name=name or email.split("@")[0].title(),
            google_id=f"google-{uuid4().hex}",
            subscription_plan=plan,
            subscription_status=status,
            subscription_end_date=end_date,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_project(db_session: AsyncSession):
    """Factory creating a project with its owner's OWNER membership row."""

    async def _make_project(
        owner: User,
        name: str = "Test Project",
        created_at: Optional[datetime] = None,
        with_owner_row: bool = True,
    ) -> dict:
        project = Project(id=str(uuid4()), name=name, description=None, owner_id=owner.id)
        if created_at is not None:
            project.created_at = created_at
            project.updated_at = created_at
        db_session.add(project)
        if with_owner_row:
            db_session.add(
                ProjectMember(project_id=project.id, user_id=owner.id, role=ProjectRole.OWNER.value)
            )
        await db_session.commit()
        return {"id": project.id, "name": project.name, "owner_id": owner.id}

    return _make_project


@pytest.fixture
def add_member(db_session: AsyncSession):
    """Factory adding a membership row, optionally with an explicit join time."""

    async def _add_member(
        project: dict,
        user: User,
        role: ProjectRole = ProjectRole.EDITOR,
        created_at: Optional[datetime] = None,
    ) -> ProjectMember:
        member = ProjectMember(project_id=project["id"], user_id=user.id, role=ProjectRole(role).value)
        if created_at is not None:
            member.created_at = created_at
        db_session.add(member)
        await db_session.commit()
        return member

    return _add_member


@pytest.fixture
async def test_user(make_user) -> User:
    """Create a test user."""
    return await make_user("test@example.com", name="Test User")


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user."""
    return auth_headers_for(test_user.id)


@pytest.fixture
async def other_user(make_user) -> User:
    return await make_user("other@example.com", name="Other User")


@pytest.fixture
def other_auth(other_user: User) -> dict:
    return auth_headers_for(other_user.id)


@pytest.fixture
async def project(test_user: User, make_project) -> dict:
    """A project owned by ``test_user``."""
    return await make_project(test_user, name="Roadmap")


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def headers_for():
    """Build Bearer headers for any user."""

    def _headers_for(user: User) -> dict:
        return auth_headers_for(user.id)

    return _headers_for
