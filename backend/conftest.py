"""Shared pytest fixtures: in-memory database, API client and authenticated users."""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from medicycle.api.deps import get_db  # noqa: E402
from medicycle.core.rate_limiter import RateLimiter  # noqa: E402
from medicycle.core.security import get_password_hash  # noqa: E402
from medicycle.db.base import Base  # noqa: E402
from medicycle.main import create_app  # noqa: E402
from medicycle.models import User, Medicine  # noqa: E402
from medicycle.models.enums import UserRole  # noqa: E402

TEST_PASSWORD = "secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(session_factory):
    app = create_app(init_database=False, limiter=RateLimiter(requests=0))

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def register_and_login(client, username, email, role="pharmacy", password=TEST_PASSWORD):
    """Register through the API and return (user_id, auth headers)."""
    response = client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password, "role": role},
    )
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    body = response.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}


@pytest.fixture
def seller(client):
    return register_and_login(client, "City Pharmacy", "city@example.com")


@pytest.fixture
def buyer(client):
    return register_and_login(client, "Clinic B", "clinicb@example.com")


@pytest.fixture
def make_user(db):
    """Create a user row directly, for service-level tests."""
    counter = {"n": 0}

    def _make(username=None, role=UserRole.PHARMACY):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=username or f"user{n}",
            email=f"user{n}@example.com",
            hashed_password=get_password_hash(TEST_PASSWORD),
            role=role.value,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_medicine(db):
    def _make(owner, days=90, quantity=10, name="Amoxicillin", redistribution_status="none", today=None):
        today = today or date.today()
        medicine = Medicine(
            owner_id=owner.id,
            name=name,
            batch_number="B-101",
            expiry_date=today + timedelta(days=days),
            quantity=quantity,
            redistribution_status=redistribution_status,
        )
        db.add(medicine)
        db.commit()
        db.refresh(medicine)
        return medicine

    return _make
