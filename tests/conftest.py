"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- A manually driven clock
- Verification stores (in-memory, Redis via fakeredis, in-memory and file-backed SQLite)
- A verification service wired to a recording notifier
- FastAPI test client with overridden dependencies
"""

from datetime import datetime, timedelta, timezone

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.api.deps import get_clock, get_verification_service
from storefront.core.clock import ManualClock
from storefront.core.database import Base
from storefront.core.verification import VerificationService
from storefront.core.verification_store import (
    InMemoryVerificationStore,
    RedisVerificationStore,
    SqlAlchemyVerificationStore,
)
from storefront.models import verification_code  # noqa: F401  registers the table
from storefront.models.subscription import SubscriptionPlan, SubscriptionSnapshot
from storefront.services.notifier import RecordingCodeNotifier
from main import app

START = datetime(2024, 6, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def memory_store():
    return InMemoryVerificationStore()


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(redis_server):
    client = fakeredis.FakeRedis(server=redis_server, decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def redis_store(redis_client):
    return RedisVerificationStore(redis_client, retention_seconds=3600)


@pytest.fixture
def sql_store():
    """
    SQLAlchemy store on in-memory SQLite (fast, isolated).
    Tables are dropped after each test.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield SqlAlchemyVerificationStore(session_factory)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def sql_file_store(tmp_path):
    """
    SQLAlchemy store on a SQLite file with a regular connection pool, so
    concurrent sessions use separate connections like a real deployment.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'verification.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield SqlAlchemyVerificationStore(session_factory)
    engine.dispose()


@pytest.fixture(params=["memory_store", "redis_store", "sql_file_store"])
def concurrent_store(request):
    """Runs a threaded test once per store backend"""
    return request.getfixturevalue(request.param)


@pytest.fixture(params=["memory_store", "redis_store", "sql_store"])
def any_store(request):
    """Runs a test once per store backend"""
    return request.getfixturevalue(request.param)


@pytest.fixture
def notifier():
    return RecordingCodeNotifier()


@pytest.fixture
def service(memory_store, notifier, clock):
    return VerificationService(
        store=memory_store,
        notifier=notifier,
        clock=clock,
        code_length=6,
        expiry_window=timedelta(minutes=10),
        max_attempts=3
    )


@pytest.fixture
def client(service, clock):
    """
    FastAPI test client with the verification service and clock overridden.
    """
    app.dependency_overrides[get_verification_service] = lambda: service
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def basic_plan():
    return SubscriptionPlan(
        name="basic",
        display_name="Basic",
        max_browse_count=100,
        max_listing_count=5,
        listing_visibility_delay_hours=24,
        notifications_enabled=True
    )


@pytest.fixture
def active_subscription(basic_plan):
    """Active subscription with plenty of time and allowance left"""
    return SubscriptionSnapshot(
        user_id="user-1",
        plan=basic_plan,
        end_date=START + timedelta(days=90),
        browse_count_used=10,
        listing_count_used=1
    )
