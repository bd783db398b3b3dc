"""Pytest configuration and fixtures for the classifieds tests."""

import os
import tempfile
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite://"
os.environ["PARALLEL_READS"] = "false"
os.environ["BOOTSTRAP_ADMIN"] = "false"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="classifieds-uploads-")

from classifieds.config import get_settings
from classifieds.database import Base, get_db
from classifieds.main import app
from classifieds.models import House, Job, Role, User, ROLE_ADMIN, ROLE_USER
from classifieds.services.auth import hash_password
from classifieds.services.sessions import identity_for


# Use in-memory SQLite for tests
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Enable foreign key support for SQLite (required for ON DELETE CASCADE/SET NULL)
@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "password123"


@pytest.fixture
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """Create a test client with database dependency override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point blob storage at a per-test directory."""
    monkeypatch.setattr(get_settings(), "upload_dir", str(tmp_path))
    return tmp_path


@pytest.fixture
def roles(db):
    """Seed the user and admin roles."""
    user_role = Role(name=ROLE_USER)
    admin_role = Role(name=ROLE_ADMIN)
    db.add_all([user_role, admin_role])
    db.commit()
    return {ROLE_USER: user_role, ROLE_ADMIN: admin_role}


def _make_user(db, role, username, **extra):
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(PASSWORD),
        role=role,
        **extra,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db, roles):
    """A regular account."""
    return _make_user(db, roles[ROLE_USER], "alice")


@pytest.fixture
def other_user(db, roles):
    """A second regular account."""
    return _make_user(db, roles[ROLE_USER], "bob")


@pytest.fixture
def admin_user(db, roles):
    """An account holding the admin role."""
    return _make_user(db, roles[ROLE_ADMIN], "root")


@pytest.fixture
def company_user(db, roles):
    """A verified company account."""
    return _make_user(
        db,
        roles[ROLE_USER],
        "acme",
        is_company=True,
        is_verified_company=True,
        company_name="Acme Corp",
    )


@pytest.fixture
def identity():
    """Build the session identity for a user row."""
    return identity_for


@pytest.fixture
def login(client):
    """Log a user in through the API; the client keeps the session cookie."""
    def _login(user, password=PASSWORD):
        client.cookies.clear()
        response = client.post(
            "/api/auth/login",
            json={"username": user.username, "password": password},
        )
        assert response.status_code == 200, response.text
        return response
    return _login


@pytest.fixture
def published_house(db, user):
    """A published house owned by ``user``."""
    house = House(
        user_id=user.id,
        title="Cabin by the river",
        address="1 River Rd",
        price=250000,
        number_of_bedrooms=3,
        number_of_bathrooms=2,
        is_published=True,
    )
    db.add(house)
    db.commit()
    db.refresh(house)
    return house


@pytest.fixture
def draft_house(db, user):
    """An unpublished house owned by ``user``, last touched long ago."""
    house = House(
        user_id=user.id,
        title="Fixer upper",
        address="9 Elm St",
        price=90000,
        description="Needs work",
        is_published=False,
        updated_at=datetime(2020, 1, 1),
    )
    db.add(house)
    db.commit()
    db.refresh(house)
    return house


@pytest.fixture
def job(db, company_user):
    """A published native-application job posted by ``company_user``."""
    job = Job(
        user_id=company_user.id,
        title="Line Cook",
        company="Acme Corp",
        location="Fairbanks, AK",
        job_type="full-time",
        is_published=True,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job
