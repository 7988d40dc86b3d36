"""
Shared pytest fixtures for the Water Permit Portal tests
Runs against an in-memory SQLite store with a frozen clock and a code
dispatcher that keeps codes in memory
"""

import os

# Settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-permit-portal"
os.environ["AUTO_CREATE_TABLES"] = "false"

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from permit_portal.core.database import SessionLocal, create_tables, drop_tables
from permit_portal.crud.crud_user import user as crud_user
from permit_portal.main import app
from permit_portal.models.enums import UserRole
from permit_portal.schemas.user import UserCreate
from permit_portal.services.notification_service import RecordingCodeDispatcher, get_code_dispatcher
from permit_portal.services.signup_flow import get_clock

STAFF_PASSWORD = "StaffPass123!"


class FrozenClock:
    """Clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 6, 20, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def dispatcher():
    return RecordingCodeDispatcher()


@pytest.fixture
def db():
    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_tables()


@pytest.fixture
def client(db, clock, dispatcher):
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_code_dispatcher] = lambda: dispatcher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_staff(db):
    """Create an active staff account for a role"""
    def _make_staff(role: UserRole, email: str = None):
        return crud_user.create_staff(db, obj_in=UserCreate(
            email=email or f"{role.value}@rwb.gov.rw",
            password=STAFF_PASSWORD,
            role=role,
            first_name=role.value.title(),
            last_name="Officer",
        ))
    return _make_staff


@pytest.fixture
def login(client):
    """Log in and return the Authorization header"""
    def _login(email: str, password: str = STAFF_PASSWORD) -> dict:
        response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}
    return _login


@pytest.fixture
def register_applicant(client, dispatcher, clock):
    """Run the full signup flow over HTTP and return the applicant's email"""
    def _register(email: str = "amina.uwase@example.rw", password: str = "Applicant123!") -> str:
        response = client.post("/api/v1/auth/register", json={
            "email": email,
            "password": password,
            "confirm_password": password,
            "phone": "+250788123456",
            "account_type": "individual",
            "first_name": "Amina",
            "last_name": "Uwase",
            "id_number": "1199080012345678",
            "id_type": "national_id",
            "province": "Kigali",
            "district": "Gasabo",
        })
        assert response.status_code == 201, response.text
        code = dispatcher.last_code_for(email)
        response = client.post("/api/v1/auth/verify", json={"email": email, "code": code})
        assert response.status_code == 200, response.text
        return email
    return _register
