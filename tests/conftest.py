"""
Pytest fixtures for testing.

Provides:
- RBAC engines, empty and pre-populated
- Async database session with rollback
- Subject models and a factory for creating test subjects
"""

from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import String
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from hrbac.core.config import RBACSettings
from hrbac.models import Base, UUIDMixin, SubjectMixin, SubjectOptions
from hrbac.rbac import RBAC


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============ Subject Models ============


class User(Base, UUIDMixin, SubjectMixin):
    """Subject with no configured defaults."""

    __tablename__ = "users"
    __rbac_options__ = SubjectOptions()

    email: Mapped[str] = mapped_column(String(255), nullable=False)


class Member(Base, UUIDMixin, SubjectMixin):
    """Subject with a default role and default ad-hoc permission."""

    __tablename__ = "members"
    __rbac_options__ = SubjectOptions(
        default_role="viewer",
        default_permissions=("read_doc",),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)


# ============ RBAC ============


@pytest.fixture
def settings() -> RBACSettings:
    return RBACSettings(delimiter="_", default_role=None, default_permissions=[])


@pytest.fixture
def empty_rbac(settings: RBACSettings) -> RBAC:
    return RBAC(settings=settings)


@pytest_asyncio.fixture
async def rbac(settings: RBACSettings) -> RBAC:
    """
    Engine with:
    - permissions read_doc, write_doc, delete_doc
    - viewer: read_doc
    - editor: write_doc
    - superEditor: inherits editor
    """
    return await RBAC.from_definition(
        {
            "roles": ["viewer", "editor", "superEditor"],
            "permissions": {"doc": ["read", "write", "delete"]},
            "grants": {
                "viewer": ["read_doc"],
                "editor": ["write_doc"],
                "superEditor": ["editor"],
            },
        },
        settings=settings,
    )


# ============ Database ============


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create database session with automatic rollback.
    """
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


# ============ Factory Fixtures ============


class UserFactory:
    """Factory for creating test users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        email: str | None = None,
        role: str | None = None,
        permissions: list[str] | None = None,
    ) -> User:
        """Create a user in the database."""
        user = User(
            email=email or f"test-{uuid4().hex[:8]}@example.com",
            role=role,
            permissions=list(permissions or []),
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user


@pytest_asyncio.fixture
async def user_factory(db: AsyncSession) -> UserFactory:
    """Fixture that provides UserFactory."""
    return UserFactory(db)


@pytest_asyncio.fixture
async def test_user(user_factory: UserFactory) -> User:
    """Create a user without role or ad-hoc permissions."""
    return await user_factory.create()


@pytest.fixture
def member_model() -> type[Member]:
    return Member


@pytest.fixture
def user_model() -> type[User]:
    return User
