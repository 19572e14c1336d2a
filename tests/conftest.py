"""
Shared fixtures for the Tandur API test suite.

Every test runs against a fresh in-memory SQLite database; the app's get_db
dependency is overridden to hand out sessions on that database.
"""

import os
import sys
from pathlib import Path

import pytest

# Settings are read at import time, so these must be set before importing the app
os.environ.setdefault("SECRET_KEY", "tandur-test-secret-key")
os.environ["ENVIRONMENT"] = "testing"

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from core.config import settings
from core.security import create_access_token, hash_password
from db import db_base
from db.db_base import get_db
from db.models import Base, User, ROLE_ADMIN, ROLE_PEMBELI, ROLE_PETANI

# ============================================================================
# CONFIGURATION
# ============================================================================

engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for tests"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def reset_db(monkeypatch):
    """Reset database before each test"""
    db_base.engine = engine
    db_base.SessionLocal = TestingSessionLocal
    db_base._tables_initialized = True

    # TaniBot answers locally unless a test opts into the remote model
    monkeypatch.setattr(settings, "GROQ_API_KEY", None)

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def test_db() -> Session:
    """Provide test database session"""
    db = TestingSessionLocal()
    yield db
    db.close()


def create_user(db: Session, email: str, role: str = ROLE_PEMBELI, password: str = "password123", **fields) -> User:
    user = User(
        email=email,
        name=fields.pop("name", email.split("@")[0]),
        password_hash=hash_password(password) if password else None,
        role=role,
        provider="credentials",
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def pembeli(test_db: Session) -> User:
    return create_user(test_db, "budi@example.com", name="Budi", bio="Suka sayur segar")


@pytest.fixture
def other_pembeli(test_db: Session) -> User:
    return create_user(test_db, "sari@example.com", name="Sari")


@pytest.fixture
def admin(test_db: Session) -> User:
    return create_user(test_db, "admin@tandur.id", role=ROLE_ADMIN, name="Admin Tandur")


@pytest.fixture
def petani(test_db: Session) -> User:
    return create_user(
        test_db,
        "tani@example.com",
        role=ROLE_PETANI,
        name="Pak Tani",
        username="paktani",
        lokasi="Garut",
    )


def token_for(user: User) -> str:
    return create_access_token(data={"sub": str(user.id)})


@pytest.fixture
def pembeli_token(pembeli) -> str:
    return token_for(pembeli)


@pytest.fixture
def other_pembeli_token(other_pembeli) -> str:
    return token_for(other_pembeli)


@pytest.fixture
def admin_token(admin) -> str:
    return token_for(admin)


@pytest.fixture
def petani_token(petani) -> str:
    return token_for(petani)


def auth_headers(token: str) -> dict[str, str]:
    """Helper to build Authorization header."""
    return {"Authorization": f"Bearer {token}"}
