"""
Shared fixtures: an in-memory SQLite database per test, plus helpers that
create users the way the services do.
"""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["DEBUG"] = "false"
os.environ["GEMINI_API_KEY"] = ""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from medportal.auth.identity_provider import IdentityProvider
from medportal.auth.schemas import SessionContext
from medportal.common.database.document_store import DocumentStore
from medportal.models.models import Base, UserRole
from medportal.modules.user import user_service

PASSWORD = "secret123"

# Creates doctor and admin accounts; no record of its own is needed
ROOT_ADMIN = SessionContext(user_id="root-admin", role=UserRole.ADMIN, email="root@test.com")


@pytest.fixture
async def engine():
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
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db):
    return DocumentStore(db)


@pytest.fixture
def identity_provider(db):
    return IdentityProvider(db)


def context_for(user) -> SessionContext:
    return SessionContext(user_id=user.id, role=user.role, email=user.email)


@pytest.fixture
def make_user(store, identity_provider):
    """Create a user and return (user, session context)."""

    async def _make(role=UserRole.PATIENT, email=None, **profile):
        email = email or f"{role.value}-{len(_make.created)}@test.com"
        ctx = None if role == UserRole.PATIENT else ROOT_ADMIN
        user = await user_service.create_user(
            store, identity_provider, role, email, PASSWORD, profile, ctx=ctx
        )
        _make.created.append(user)
        return user, context_for(user)

    _make.created = []
    return _make
