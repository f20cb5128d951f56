import os
import uuid

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["AI_RESPONSE_DELAY_SECONDS"] = "0"
os.environ["COHERE_API_KEY"] = ""
os.environ["SEED_DEFAULT_CERTIFICATIONS"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from abby_api.database import Base, get_db
from abby_api.domain.users.repository import UserRepository
from abby_api.main import app
from abby_api.security_utils import create_access_token, hash_password

TEST_PASSWORD = "password123"
# Hashed once for every test user
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """TestClient wired to the test database."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Factory for users with their role profile."""

    def _make(role="client", is_active=True, approved=True, email=None, **profile_fields):
        suffix = uuid.uuid4().hex[:8]
        if role == "doctor":
            profile_fields.setdefault("license_number", f"LIC-{suffix}")
            profile_fields.setdefault("specializations", ["Anxiety Disorders"])
            profile_fields.setdefault("is_approved", approved)
        user = UserRepository.create_user(
            db,
            profile_fields=profile_fields,
            email=email or f"{role}-{suffix}@example.com",
            password_hash=TEST_PASSWORD_HASH,
            first_name=role.capitalize(),
            last_name=suffix,
            role=role,
            is_active=is_active,
        )
        db.commit()
        return user

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token(user.id, user.email, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client_user(make_user):
    return make_user("client")


@pytest.fixture
def doctor_user(make_user):
    return make_user("doctor")


@pytest.fixture
def admin_user(make_user):
    return make_user("admin")
