"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test (savepoint capable)
- In-memory cache store
- Case graph builders (holders, individuals, properties, leases)
- HTTPX AsyncClient wired to the test session and cache
"""
import os
from typing import AsyncGenerator, Generator

# Must be set before casefile settings are imported
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from casefile.core.cache import MemoryCacheStore
from casefile.core.deps import get_cache, get_db
from casefile.core.locks import HolderLockRegistry
from casefile.db import models  # noqa: F401  (registers tables)
from casefile.db.base import Base
from casefile.db.enums import HolderKind, HolderRole
from casefile.db.session import enable_sqlite_savepoints
from casefile.main import app
from casefile.services import case_context_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """One connection shared across threads so the ASGI threadpool sees the same data."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(test_engine)
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    """Session matching the application's SessionLocal configuration."""
    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestSession()
    yield session
    session.close()


@pytest.fixture(scope="function")
def cache() -> MemoryCacheStore:
    return MemoryCacheStore(max_entries=128)


@pytest.fixture(scope="function")
def locks() -> HolderLockRegistry:
    return HolderLockRegistry()


# =============================================================================
# Case Graph Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def owner(db: Session):
    """Individual owner with a primary individual."""
    holder = case_context_service.create_case_holder(
        db, HolderKind.INDIVIDUAL, HolderRole.OWNER
    )
    case_context_service.add_individual(
        db, holder, is_primary=True, first_name="Claire", last_name="Martin"
    )
    db.commit()
    return holder


@pytest.fixture(scope="function")
def owned_property(db: Session, owner):
    prop = case_context_service.add_property(
        db, owner, label="Appartement Lyon 3", full_address="12 rue Paul Bert, Lyon"
    )
    db.commit()
    return prop


@pytest.fixture(scope="function")
def tenant(db: Session):
    """Tenant household of two individuals, primary first."""
    holder = case_context_service.create_case_holder(
        db, HolderKind.INDIVIDUAL, HolderRole.TENANT
    )
    case_context_service.add_individual(
        db, holder, is_primary=True, first_name="Jean", last_name="Dupont"
    )
    case_context_service.add_individual(
        db, holder, first_name="Marie", last_name="Dupont"
    )
    db.commit()
    return holder


@pytest.fixture(scope="function")
def company_owner(db: Session):
    holder = case_context_service.create_case_holder(
        db, HolderKind.ORGANIZATION, HolderRole.OWNER
    )
    case_context_service.set_organization(db, holder, name="SCI Les Tilleuls")
    db.commit()
    return holder


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session, cache: MemoryCacheStore) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient for the public intake endpoints."""
    def override_get_db():
        yield db

    def override_get_cache():
        return cache

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = override_get_cache

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
