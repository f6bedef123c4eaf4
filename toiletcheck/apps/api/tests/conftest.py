"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
# Inject sys.path for reliable pytest imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # => .../apps/api

import os

# Must be set before toiletcheck_api.main / db.session are imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("TC_JSON_LOGS", "false")
os.environ.setdefault("MIDTRANS_SERVER_KEY", "SB-Mid-server-TEST")

import uuid
from datetime import date
from typing import Callable, Optional

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from toiletcheck_api.auth.sessions import SessionService
from toiletcheck_api.db.cache import CacheService
from toiletcheck_api.db.models import (
    Base,
    Building,
    InspectionRecord,
    Location,
    Organization,
    Role,
    User,
    UserRole,
)
from toiletcheck_api.db.redis_client import get_redis
from toiletcheck_api.db.session import get_db
from toiletcheck_api.main import app

ROLE_LEVELS = {
    "user": 0,
    "supervisor": 50,
    "admin": 80,
    "super_admin": 90,
    "owner": 100,
}


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Session:
    """Fresh in-memory SQLite session for each test."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
        session.rollback()
    finally:
        session.close()


@pytest.fixture(scope="function")
def redis_client():
    """In-process Redis double, flushed per test."""
    client = fakeredis.FakeRedis(decode_responses=True)
    client.flushall()
    yield client
    client.flushall()


@pytest.fixture
def cache(redis_client) -> CacheService:
    return CacheService(redis_client)


@pytest.fixture
def sessions(redis_client) -> SessionService:
    return SessionService(redis_client)


@pytest.fixture
def test_client(db_session: Session, redis_client):
    """TestClient with db and redis dependency overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close - db_session fixture handles it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: redis_client
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def roles(db_session: Session) -> dict[str, Role]:
    created = {}
    for name, level in ROLE_LEVELS.items():
        role = Role(name=name, display_name=name.replace("_", " ").title(), level=level, is_active=True)
        db_session.add(role)
        created[name] = role
    db_session.commit()
    return created


@pytest.fixture
def facility(db_session: Session) -> dict:
    """One organization with one building and one active location."""
    org = Organization(name="Prosperity Tower", short_code="PROS", is_active=True)
    db_session.add(org)
    db_session.flush()
    building = Building(organization_id=org.id, name="Main Block", short_code="BLD1", is_active=True)
    db_session.add(building)
    db_session.flush()
    location = Location(
        organization_id=org.id,
        building_id=building.id,
        name="Toilet Lt. 3 Pria",
        code="F3T1",
        qr_code="PROS-BLD1-F3T1-abc1234",
        floor="3",
        area="East",
        section="A",
        is_active=True,
    )
    db_session.add(location)
    db_session.commit()
    return {"organization": org, "building": building, "location": location}


@pytest.fixture
def make_user(db_session: Session, roles) -> Callable[..., User]:
    """Factory: make_user(role="admin", organization_id=...) -> User."""

    def _make(
        role: Optional[str] = "user",
        email: Optional[str] = None,
        full_name: str = "Test Inspector",
        organization_id: Optional[str] = None,
        is_active: bool = True,
    ) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            full_name=full_name,
            organization_id=organization_id,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.flush()
        if role is not None:
            db_session.add(UserRole(user_id=user.id, role_id=roles[role].id))
        db_session.commit()
        return user

    return _make


@pytest.fixture
def auth_headers(sessions: SessionService) -> Callable[[User], dict[str, str]]:
    """Factory: open a live session for a user and return its bearer header."""

    def _headers(user: User, level: int = 0) -> dict[str, str]:
        token = sessions.create_session(
            {
                "userId": user.id,
                "email": user.email,
                "role": level,
                "organizationId": user.organization_id,
            }
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_inspection(db_session: Session) -> Callable[..., InspectionRecord]:
    def _make(user: User, location: Location, responses=None, inspection_date: Optional[date] = None):
        record = InspectionRecord(
            user_id=user.id,
            location_id=location.id,
            organization_id=location.organization_id,
            inspection_date=inspection_date or date.today(),
            inspection_time="09:30:00",
            overall_status="satisfactory",
            responses=responses if responses is not None else {"floor": "good", "sink": "good"},
            photo_urls=[],
        )
        db_session.add(record)
        db_session.commit()
        return record

    return _make
