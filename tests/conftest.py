"""Shared fixtures for the test suite.

Environment is fixed before any clinicdesk or api module is imported:
an in-memory SQLite database and test secrets.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-for-unit-tests"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ.setdefault("LOG_FORMAT", "console")

from typing import Callable, Optional  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from clinicdesk.db import models  # noqa: E402,F401
from clinicdesk.db.engine import build_engine  # noqa: E402
from clinicdesk.db.models import Profile  # noqa: E402

from tests.fakes import FakeGateway, WEBHOOK_SECRET  # noqa: E402


@pytest.fixture(scope="function")
def test_engine():
    """Fresh in-memory SQLite database per test."""
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_session(test_engine):
    """Database session bound to the test engine."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def gateway() -> FakeGateway:
    """Stripe gateway double that records every remote call."""
    return FakeGateway(webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def make_profile(test_session) -> Callable[..., Profile]:
    """Factory for profiles."""

    def _make(
        trial_used: bool = False,
        stripe_customer_id: Optional[str] = None,
        full_name: str = "Ana Souza",
    ) -> Profile:
        profile = Profile(
            full_name=full_name,
            email=f"user-{uuid4().hex[:8]}@example.com",
            trial_used=trial_used,
            stripe_customer_id=stripe_customer_id,
        )
        test_session.add(profile)
        test_session.commit()
        test_session.refresh(profile)
        return profile

    return _make
