"""Pytest configuration and shared fixtures."""

import json
import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ai_routines import get_anthropic_client
from auth import AuthenticatedUser, FirebaseUser, get_or_create_user
from catalog import ExerciseCatalog, get_exercise_catalog
from database import Base, get_db
from main import app
from models import UserDB


def get_test_db_url():
    """Get the test database URL from environment or use in-memory SQLite."""
    return os.environ.get("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture
def test_engine():
    """Create a fresh schema for each test."""
    db_url = get_test_db_url()
    if db_url.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        engine = create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(db_url, echo=False)

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    """Create a new database session for each test."""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )
    session = TestingSessionLocal()

    yield session

    session.close()


# Authentication fixtures


@pytest.fixture
def mock_firebase_auth():
    """Stand-in for the firebase_admin.auth module."""
    return MagicMock()


@pytest.fixture
def test_firebase_user() -> FirebaseUser:
    """Create a test Firebase user."""
    return FirebaseUser(
        uid="test_firebase_uid_123",
        email="test@example.com",
        email_verified=True,
        claims={"uid": "test_firebase_uid_123", "email": "test@example.com"},
    )


@pytest.fixture
def test_user(db_session: Session, test_firebase_user: FirebaseUser) -> UserDB:
    """Create a test user in the database."""
    user = UserDB(
        firebase_uid=test_firebase_user.uid,
        email=test_firebase_user.email,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_authenticated_user(
    test_user: UserDB, test_firebase_user: FirebaseUser
) -> AuthenticatedUser:
    """Create a test authenticated user context."""
    return AuthenticatedUser(
        firebase_uid=test_user.firebase_uid,
        user_id=test_user.id,
        email=test_user.email,
        firebase_user=test_firebase_user,
    )


# External service fixtures


def make_anthropic_response(payload) -> MagicMock:
    """Build a fake Messages API response whose text is ``payload``."""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    response = MagicMock()
    response.content = [MagicMock(text=text)]
    return response


@pytest.fixture
def mock_anthropic_client():
    """Anthropic client whose messages.create is a MagicMock.

    By default the call fails, so code under test takes its fallback path.
    Tests clear ``side_effect`` and set ``return_value`` to
    ``make_anthropic_response(...)`` instead.
    """
    client = MagicMock()
    client.messages.create.side_effect = RuntimeError("generator offline")
    return client


@pytest.fixture
def offline_catalog() -> ExerciseCatalog:
    """Catalog without an API key, so it always serves the built-in exercises."""
    return ExerciseCatalog(base_url="https://exercises.invalid/api/v1")


@pytest.fixture
def client(db_session, test_authenticated_user, mock_anthropic_client, offline_catalog):
    """Create test client with database, auth and external service overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    def override_auth():
        return test_authenticated_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_or_create_user] = override_auth
    app.dependency_overrides[get_anthropic_client] = lambda: mock_anthropic_client
    app.dependency_overrides[get_exercise_catalog] = lambda: offline_catalog

    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()
