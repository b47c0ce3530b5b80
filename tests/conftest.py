"""
Pytest fixtures for scheduling engine tests.

Provides:
- In-memory and file-backed SQLite databases
- Fresh notification hub and lock manager per test
- User and event factories
- FastAPI TestClient with authenticated headers
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("EVENT_LOCK_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.domain.events.schemas import EventCreate  # noqa: E402
from app.domain.events.service import EventService  # noqa: E402
from app.domain.invitations.service import InvitationService  # noqa: E402
from app.domain.scheduling.availability_service import AvailabilityService  # noqa: E402
from app.domain.users.service import UserService  # noqa: E402
from app.locking import EventLockManager  # noqa: E402
from app.rate_limiter import memory_cache  # noqa: E402
from app.services.notification_service import NotificationHub  # noqa: E402


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def engine():
    """Single shared in-memory SQLite connection"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file-backed SQLite database, one connection each (for threads)"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'calendar.db'}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Each test starts with fresh rate limit windows"""
    memory_cache.clear()
    yield
    memory_cache.clear()


@pytest.fixture
def hub():
    return NotificationHub()


@pytest.fixture
def published(hub):
    """Every domain event published on the test hub, in order"""
    events = []
    hub.subscribe(events.append)
    return events


@pytest.fixture
def locks():
    return EventLockManager(wait_seconds=10)


@pytest.fixture
def event_service(db, locks, hub):
    return EventService(db, lock_manager=locks, hub=hub)


@pytest.fixture
def invitation_service(db, locks, hub):
    return InvitationService(db, lock_manager=locks, hub=hub)


@pytest.fixture
def availability_service(db):
    return AvailabilityService(db)


# =============================================================================
# FACTORIES
# =============================================================================


@pytest.fixture
def user_factory(db):
    """Create a registered user: user_factory("ana@example.com", timezone="Europe/Madrid")"""

    def _create(email, display_name=None, timezone="UTC"):
        return UserService(db).register_user(email, display_name or email.split("@")[0].title(), timezone)

    return _create


@pytest.fixture
def event_factory(event_service):
    """Create an event as ``organizer`` inviting ``participants``"""

    def _create(organizer, start, end, participants=(), title="Team sync", **kwargs):
        data = EventCreate(
            title=title,
            startInstant=start,
            endInstant=end,
            participants=list(participants),
            **kwargs,
        )
        return event_service.create_event(data, organizer)

    return _create


@pytest.fixture
def invitation_for():
    """Look up the invitation of ``email`` on ``event``"""

    def _find(event, email):
        return next(inv for inv in event.invitations if inv.recipient_email == email)

    return _find


# =============================================================================
# HTTP FIXTURES
# =============================================================================


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from app.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    from app.auth import create_access_token

    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.email)}"}

    return _headers
