# studyforge/conftest.py
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, insert
from sqlalchemy.pool import StaticPool

from studyforge.core.config import Settings
from studyforge.core.database import create_all_tables, drop_all_tables, subscriptions, users
from studyforge.core.identity import create_test_jwt
from studyforge.features.store.service import SqlStore
from studyforge.main import create_app
from studyforge.tests.mocks import FakeProvider

TEST_SECRET = "test-secret-key-for-studyforge"
TEST_USER_ID = "user_123"


@pytest.fixture
def test_settings():
    """Settings isolated from the process environment and any .env file."""
    return Settings(
        _env_file=None,
        ENV="test",
        CLERK_SECRET_KEY=TEST_SECRET,
        GROQ_API_KEY="gsk_test",
        DATABASE_URL=None,
        TEST_DATABASE_URL=None,
        STORE_PROBE_TIMEOUT_SECONDS=0.2,
        STORE_OPERATION_TIMEOUT_SECONDS=0.5,
        GENERATION_TIMEOUT_SECONDS=0.5,
        OTEL_ENABLED=False,
    )


@pytest.fixture
def engine():
    """In-memory SQLite shared across worker threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all_tables(engine)
    yield engine
    drop_all_tables(engine)
    engine.dispose()


@pytest.fixture
def store(engine):
    return SqlStore(engine)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def make_client(test_settings):
    """Build a TestClient around an app with the given collaborators."""

    def _make(store, provider=None, identity=None):
        app = create_app(
            settings_obj=test_settings,
            store=store,
            provider=provider or FakeProvider(),
            identity=identity,
        )
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture
def client(make_client, store, provider):
    return make_client(store, provider)


def bearer(sub: str = TEST_USER_ID, **claims) -> dict:
    token = create_test_jwt(sub=sub, secret=TEST_SECRET, **claims)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return bearer(TEST_USER_ID, email="sam@example.com", name="Sam Student")


@pytest.fixture
def seed_user(engine):
    """Insert a user with the given plan directly into the store."""

    def _seed(user_id: str = TEST_USER_ID, plan_type: str = "FREE"):
        now = datetime.now(timezone.utc)
        with engine.begin() as conn:
            conn.execute(insert(users).values(id=user_id, email="sam@example.com", name="Sam", created_at=now, updated_at=now))
            conn.execute(
                insert(subscriptions).values(
                    user_id=user_id,
                    plan_type=plan_type,
                    quota_limit=100,
                    quota_used=0,
                    valid_until=now + timedelta(days=30),
                    created_at=now,
                    updated_at=now,
                )
            )

    return _seed


@pytest.fixture
def headers_for():
    """Authorization headers for an arbitrary user."""
    return bearer
