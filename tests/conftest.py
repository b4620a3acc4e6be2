# tests/conftest.py
import os

# Keep the module-level engine off any real database.
os.environ["DATABASE_URL"] = "sqlite://"

import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clarity.db.database import Base

# Import models so metadata knows about all tables
import clarity.models  # noqa: F401
from clarity.models.endpoint import Endpoint
from clarity.models.ping import Ping


@pytest.fixture(scope="session")
def engine():
    """Create an in-memory SQLite database shared across tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def clean_db(engine):
    """Reset all tables before each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture()
def db(engine):
    """Return a new SQLAlchemy session for each test."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_endpoint(db):
    """Factory for persisted endpoints."""
    def _make(resource_url=None, **fields):
        endpoint = Endpoint(
            resource_url=resource_url or f"https://api.example.com/{uuid.uuid4().hex[:8]}",
            **fields,
        )
        db.add(endpoint)
        db.commit()
        db.refresh(endpoint)
        return endpoint
    return _make


@pytest.fixture
def add_pings(db):
    """Persist pings for an endpoint; ``outcomes`` is a list of (success, latency_ms, minutes_ago)."""
    def _add(endpoint, outcomes, now=None):
        now = now or datetime.now(timezone.utc)
        for success, latency_ms, minutes_ago in outcomes:
            db.add(Ping(
                endpoint_id=endpoint.id,
                pinged_at=now - timedelta(minutes=minutes_ago),
                success=success,
                status_code=200 if success else 500,
                latency_ms=latency_ms,
                error_message=None if success else "HTTP 500",
            ))
        db.commit()
    return _add


@pytest.fixture
def mock_client():
    """Build an httpx.AsyncClient backed by a handler function."""
    def _build(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _build
