import logging
import os
from typing import Iterator
from unittest.mock import patch

import pytest
from celery import Task
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Set test environment variables before the app reads its settings
os.environ.update(
    {
        "DATABASE_URL": os.getenv("TEST_DATABASE_URL", "sqlite://"),
        "SQUARE_WEBHOOK_SIGNATURE_KEY": "test_signature_key",
        "REDIS_URL": "redis://localhost:6379/2",  # Use a separate Redis DB for testing
        "EVENTS_BUCKET": "",
        "AWS_REGION": "us-east-1",
        "DISPATCH_IN_BACKGROUND": "false",
    }
)

from moneybuddy.core.config import get_settings  # noqa: E402
from moneybuddy.db.models import Base  # noqa: E402
from moneybuddy.db.session import SessionLocal, engine  # noqa: E402
from moneybuddy.main import app, db_session  # noqa: E402
from moneybuddy.services.rate_limit import get_rate_limiter  # noqa: E402
from moneybuddy.services.square_verify import SIGNATURE_HEADER, compute_signature  # noqa: E402

logger = logging.getLogger(__name__)

SIGNATURE_KEY = "test_signature_key"


@pytest.fixture(autouse=True)
def celery_task_always_eager():
    with patch.object(Task, "apply_async") as mock:

        class MockAsyncResult:
            def __init__(self):
                self.id = "mock-task-id"

        mock.return_value = MockAsyncResult()
        yield mock


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db(setup_database) -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def client(db) -> Iterator[TestClient]:
    """Test client sharing the test session, with rate limiting disabled."""
    app.dependency_overrides[db_session] = lambda: db
    app.dependency_overrides[get_rate_limiter] = lambda: None

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def signed_headers():
    def _signed(body: bytes, secret: str = SIGNATURE_KEY) -> dict[str, str]:
        return {
            SIGNATURE_HEADER: compute_signature(body, secret),
            "Content-Type": "application/json",
        }

    return _signed
