"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created per test
- Organization/user fixtures
- Recording and failing notification publishers
- HTTPX AsyncClient bound to the FastAPI app
"""
import os
import uuid
from typing import AsyncGenerator, Generator

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("INTERNAL_SECRET", "test-internal-secret")
os.environ.setdefault("ENV", "test")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from lexdesk.core.deps import get_db
from lexdesk.core.errors import ExternalDependencyFailedError
from lexdesk.db.base import Base
from lexdesk.db.enums import Role
from lexdesk.db.models import Client, LegalCase, Membership, Organization, User
from lexdesk.db.session import SessionLocal, engine
from lexdesk.main import app
from lexdesk.services.notification_events import NotificationEvent


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; app code is free to commit."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_org(db: Session, name: str) -> Organization:
    org = Organization(
        id=uuid.uuid4(),
        name=name,
        slug=f"test-org-{uuid.uuid4().hex[:8]}",
        ai_enabled=True,
    )
    db.add(org)
    db.flush()
    return org


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    """Create a test organization."""
    return _make_org(db, "Test Law Firm")


@pytest.fixture(scope="function")
def other_org(db: Session) -> Organization:
    """A second tenant for isolation checks."""
    return _make_org(db, "Other Law Firm")


@pytest.fixture(scope="function")
def test_user(db: Session, test_org: Organization) -> User:
    """Create a test user with membership in test_org."""
    user = User(
        id=uuid.uuid4(),
        email=f"test-{uuid.uuid4().hex[:8]}@test.com",
        display_name="Test User",
    )
    db.add(user)
    db.flush()

    membership = Membership(
        id=uuid.uuid4(),
        user_id=user.id,
        organization_id=test_org.id,
        role=Role.ATTORNEY.value,
    )
    db.add(membership)
    db.commit()
    return user


@pytest.fixture(scope="function")
def test_case(db: Session, test_org: Organization) -> LegalCase:
    """A personal injury case with a client in test_org."""
    client = Client(id=uuid.uuid4(), organization_id=test_org.id, first_name="Jane", last_name="Doe")
    db.add(client)
    db.flush()
    case = LegalCase(
        id=uuid.uuid4(),
        organization_id=test_org.id,
        client_id=client.id,
        case_number="2026-0001",
        title="Doe v. Acme Trucking",
        practice_area="Personal Injury",
    )
    db.add(case)
    db.commit()
    return case


# =============================================================================
# Notification publishers
# =============================================================================

class RecordingPublisher:
    """Collects published events instead of queueing them."""

    def __init__(self):
        self.events: list[NotificationEvent] = []

    def publish(self, event: NotificationEvent) -> None:
        self.events.append(event)


class FailingPublisher:
    """Always fails, like an unreachable notification sink."""

    def __init__(self):
        self.attempts = 0

    def publish(self, event: NotificationEvent) -> None:
        self.attempts += 1
        raise ExternalDependencyFailedError("notification sink unavailable")


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def failing_publisher() -> FailingPublisher:
    return FailingPublisher()


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient for the FastAPI app sharing the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()
