"""
Test fixtures for the blog API tests.

Provides an in-memory database, a TestClient wired to it, and account
fixtures with ready-to-use bearer tokens.
"""

import os

# Configure the app before anything under app/ is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["RESEND_API_KEY"] = ""
os.environ["REVALIDATE_URL"] = ""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401  registers every table
from app.core.jwt import create_access_token
from app.db import get_session
from app.models import Account, LoginSession, Role
from app.services.accounts import create_account

# Use in-memory SQLite for tests (fast, isolated)
TEST_DATABASE_URL = "sqlite:///:memory:"

STRONG_PASSWORD = "Str0ng!Passw0rd"


@pytest.fixture(autouse=True)
def reset_process_state():
    """Clear the login rate limiter and category cache before each test."""
    from app.core.rate_limit import rate_limiter
    from app.main import app

    rate_limiter.clear()
    app.state.category_cache.invalidate()
    yield


@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def test_session(test_engine) -> Generator[Session, None, None]:
    """Provide a test database session."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(scope="function")
def client(test_engine):
    """Create test client with test database."""
    from app.main import app

    # Override the get_session dependency
    def override_get_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    client = TestClient(app)
    yield client

    # Clean up
    app.dependency_overrides.clear()


@pytest.fixture
def make_account(test_session: Session) -> Callable[..., Account]:
    """Factory creating accounts with preferences and metadata rows."""
    counter = {"n": 0}

    def _make(
        email: str = None,
        password: str = STRONG_PASSWORD,
        name: str = "Test User",
        role: Role = Role.SUBSCRIBER,
        email_verified: bool = True,
        registration_source: str = "web",
    ) -> Account:
        counter["n"] += 1
        return create_account(
            test_session,
            email=email or f"user{counter['n']}@example.com",
            password=password,
            name=name,
            role=role,
            email_verified=email_verified,
            registration_source=registration_source,
        )

    return _make


@pytest.fixture
def issue_token(test_session: Session) -> Callable[[Account], str]:
    """Sign a token for an account and store the backing login session."""

    def _issue(account: Account, expires_delta: timedelta = timedelta(minutes=60)) -> str:
        token = create_access_token(
            {"sub": account.id, "email": account.email, "role": Role(account.role).value},
            expires_delta=expires_delta,
        )
        test_session.add(LoginSession(
            token=token,
            account_id=account.id,
            expires_at=datetime.now(timezone.utc) + expires_delta,
            user_agent="pytest",
            ip_address="testclient",
        ))
        test_session.commit()
        return token

    return _issue


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(make_account) -> Account:
    return make_account(email="admin@example.com", name="Admin", role=Role.ADMIN)


@pytest.fixture
def subscriber(make_account) -> Account:
    return make_account(email="reader@example.com", name="Reader", role=Role.SUBSCRIBER)


@pytest.fixture
def admin_headers(admin, issue_token) -> dict:
    return bearer(issue_token(admin))


@pytest.fixture
def subscriber_headers(subscriber, issue_token) -> dict:
    return bearer(issue_token(subscriber))


@pytest.fixture
def make_post(test_session: Session, admin: Account):
    """Factory creating posts through the same path as the create endpoint."""
    from app.schemas import PostCreate
    from app.services.posts import create_post

    def _make(title: str = "A Post", content: str = "Some body text", published: bool = True, author_id: int = None, **extra):
        data = PostCreate(title=title, content=content, published=published, **extra)
        return create_post(test_session, author_id or admin.id, data)

    return _make
