"""
Test configuration and fixtures.

Provides:
- In-memory SQLite schema created once per session
- Database session with savepoint (rollback after each test)
- Company/user/membership/location factories
- HTTPX AsyncClient authenticated as any user, with CSRF header
"""
import os
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Generator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

# Point the app at an in-memory database before anything builds the engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"

from companyhub.main import app
from companyhub.core.deps import get_db, COOKIE_NAME, CSRF_HEADER, CSRF_HEADER_VALUE
from companyhub.core.security import create_session_token
from companyhub.db.base import Base
from companyhub.db.enums import Role
from companyhub.db.models import Company, Location, Membership, User
from companyhub.db.session import engine


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def schema() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session inside an outer transaction.

    The session joins through SAVEPOINTs so that app code can call
    commit() without ending the test transaction.
    """
    connection = engine.connect()
    # Begin outer transaction that we'll rollback at end
    transaction = connection.begin()

    session = Session(
        bind=connection,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )

    yield session

    session.close()
    # Rollback outer transaction - undoes all test changes
    transaction.rollback()
    connection.close()


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture(scope="function")
def make_company(db: Session):
    def _make(name: str = "Test Company") -> Company:
        company = Company(
            id=uuid.uuid4(),
            name=name,
            slug=f"test-company-{uuid.uuid4().hex[:8]}",
        )
        db.add(company)
        db.flush()
        return company
    return _make


@pytest.fixture(scope="function")
def company(make_company) -> Company:
    """Create a test company."""
    return make_company("Acme Corp")


@pytest.fixture(scope="function")
def make_user(db: Session):
    def _make(display_name: str = "Test User") -> User:
        user = User(
            id=uuid.uuid4(),
            email=f"test-{uuid.uuid4().hex[:8]}@test.com",
            display_name=display_name,
        )
        db.add(user)
        db.flush()
        return user
    return _make


@pytest.fixture(scope="function")
def make_member(db: Session, make_user):
    """Create a user with an active membership in the given company."""
    def _make(company: Company, role: Role = Role.MEMBER, display_name: str | None = None) -> User:
        user = make_user(display_name or f"{role.value.title()} User")
        membership = Membership(
            id=uuid.uuid4(),
            user_id=user.id,
            company_id=company.id,
            role=role.value,
        )
        db.add(membership)
        db.flush()
        return user
    return _make


@pytest.fixture(scope="function")
def make_location(db: Session):
    def _make(company: Company, name: str = "HQ", is_active: bool = True) -> Location:
        location = Location(
            id=uuid.uuid4(),
            company_id=company.id,
            name=name,
            city="Springfield",
            is_active=is_active,
        )
        db.add(location)
        db.flush()
        return location
    return _make


@pytest.fixture(scope="function")
def admin(company, make_member) -> User:
    return make_member(company, Role.ADMIN)


@pytest.fixture(scope="function")
def manager(company, make_member) -> User:
    return make_member(company, Role.MANAGER)


@pytest.fixture(scope="function")
def member(company, make_member) -> User:
    return make_member(company, Role.MEMBER)


@pytest.fixture(scope="function")
def viewer(company, make_member) -> User:
    return make_member(company, Role.VIEWER)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def authed_client(db: Session):
    """
    Factory for AsyncClients authenticated as a given user.

    Usage:
        async with authed_client(user) as client:
            await client.get(...)
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    @asynccontextmanager
    async def _client(user: User, csrf: bool = True) -> AsyncGenerator[AsyncClient, None]:
        token = create_session_token(user_id=user.id, token_version=user.token_version)
        headers = {CSRF_HEADER: CSRF_HEADER_VALUE} if csrf else {}
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies={COOKIE_NAME: token},
            headers=headers,
        ) as c:
            yield c

    yield _client

    app.dependency_overrides.clear()
