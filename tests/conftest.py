"""
Test configuration for the PaciGest Plus backend.
"""
import os

# Settings are read at import time, so the environment is prepared first
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["BILLING_ADMIN_EMAILS"] = '["billing@example.com"]'
os.environ.pop("RESEND_API_KEY", None)

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pacigest.auth.models import User, SubscriptionStatus
from pacigest.auth.service import issue_token
from pacigest.core.clock import utcnow
from pacigest.core.permissions import Role, STAFF_DEFAULT_CAPABILITIES
from pacigest.core.security import hash_password
from pacigest.database import Base, get_db
from pacigest.main import app
from pacigest.notifications.sender import NotificationError, NotificationSender, get_notification_sender

# Test database URL
TEST_DATABASE_URL = "sqlite:///./test.db"

PASSWORD = "Password123"

# Create test database engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingSender(NotificationSender):
    """Keeps every email instead of sending it; ``fail`` makes every send raise."""

    def __init__(self):
        self.messages = []
        self.fail = False

    async def send(self, message):
        if self.fail:
            raise NotificationError("provider down")
        self.messages.append(message)

    def of_kind(self, kind):
        return [message for message in self.messages if message.kind == kind]


@pytest.fixture(scope="function")
def db():
    """
    Create a fresh database for each test.
    """
    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    # Drop tables after test
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture(scope="function")
def client(db, sender):
    """
    Create a test client with a test database session and a recording email sender.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    # Override the get_db and sender dependencies
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_sender] = lambda: sender

    # Create test client
    with TestClient(app) as client:
        yield client

    # Remove dependency overrides
    app.dependency_overrides = {}


@pytest.fixture
def make_user(db):
    """
    Factory for verified accounts.

    Doctors get a running trial; staff get the default capabilities of their
    employing doctor unless ``permissions`` is given.
    """
    def _make_user(email, role=Role.DOCTOR, doctor=None, permissions=None, **fields):
        now = utcnow()
        values = dict(
            email=email,
            password_hash=hash_password(PASSWORD),
            first_name="Test",
            last_name=email.split("@")[0].title(),
            role=role,
            is_active=True,
            email_verified=True,
        )
        if role == Role.DOCTOR:
            values.update(
                subscription_status=SubscriptionStatus.TRIAL,
                subscription_start_date=now,
                trial_ends_at=now + timedelta(days=30),
            )
        else:
            values.update(
                doctor_id=doctor.id,
                subscription_status=None,
                permissions=sorted(c.value for c in STAFF_DEFAULT_CAPABILITIES) if permissions is None else permissions,
            )
        values.update(fields)
        user = User(**values)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def doctor(make_user):
    return make_user("doctor@example.com")


@pytest.fixture
def other_doctor(make_user):
    return make_user("other@example.com")


@pytest.fixture
def staff(make_user, doctor):
    return make_user("assistant@example.com", role=Role.STAFF, doctor=doctor)


def auth_headers(user):
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture
def headers():
    """Build Bearer headers for a user."""
    return auth_headers


@pytest.fixture
def patient_payload():
    return {
        "first_name": "Ana",
        "last_name": "Lopez",
        "date_of_birth": "1985-04-12",
        "gender": "female",
        "email": "ana.lopez@example.com",
        "phone": "+584121234567",
        "allergies": ["penicillin"],
    }


@pytest.fixture
def create_patient(client, headers, patient_payload):
    """POST a patient as ``user`` and return the response body's data."""
    def _create_patient(user, **overrides):
        response = client.post("/api/patients/", json={**patient_payload, **overrides}, headers=headers(user))
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create_patient
