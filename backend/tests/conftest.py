"""
Pytest Configuration and Fixtures

Provides shared fixtures for all tests.
"""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator

# Minimal env before any walletguard import
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("TRANSACTION_SECRET_KEY", "test-transaction-secret-32-chars-long!")

import pytest
from fastapi.testclient import TestClient

from walletguard.core.security.policy import PolicyEvaluator
from walletguard.core.security.types import Principal, Role
from walletguard.db.session import DatabaseManager
from walletguard.stores.memory import InMemoryResourceStore, InMemoryUserDirectory

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
VALID_HASH = "a" * 64


class FakeClock:
    """Controllable clock."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# =============================================================================
# Clock and Principals
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def user() -> Principal:
    return Principal(id="u1", role=Role.USER)


@pytest.fixture
def other_user() -> Principal:
    return Principal(id="u2", role=Role.USER)


@pytest.fixture
def admin() -> Principal:
    return Principal(id="admin1", role=Role.ADMIN)


# =============================================================================
# Stores
# =============================================================================

@pytest.fixture
def directory() -> InMemoryUserDirectory:
    directory = InMemoryUserDirectory()
    directory.add_user("u1", Role.USER)
    directory.add_user("u2", Role.USER)
    directory.add_user("admin1", Role.ADMIN)
    return directory


@pytest.fixture
def store() -> InMemoryResourceStore:
    return InMemoryResourceStore()


@pytest.fixture
def sql_db() -> Generator[DatabaseManager, None, None]:
    """In-memory SQLite database with all tables created."""
    db = DatabaseManager()
    db.initialize("sqlite://")
    yield db
    db.close()


@pytest.fixture
def evaluator(directory, clock) -> PolicyEvaluator:
    return PolicyEvaluator(directory, clock=clock)


# =============================================================================
# Documents
# =============================================================================

def make_wallet(owner_id: str = "u1", **overrides) -> dict:
    wallet = {
        "id": "w1",
        "owner_id": owner_id,
        "balance": Decimal("100.00"),
        "transactions": [],
        "last_modified": NOW - timedelta(days=1),
        "transaction_hash": "b" * 64,
        # Posting fields validated on wallet updates
        "amount": Decimal("25.00"),
        "timestamp": NOW - timedelta(days=1),
        "hash": VALID_HASH,
    }
    wallet.update(overrides)
    return wallet


def make_transaction(user_id: str = "u1", **overrides) -> dict:
    transaction = {
        "id": "t1",
        "user_id": user_id,
        "amount": Decimal("50"),
        "timestamp": NOW,
        "hash": VALID_HASH,
    }
    transaction.update(overrides)
    return transaction


@pytest.fixture
def wallet() -> dict:
    return make_wallet()


@pytest.fixture
def transaction() -> dict:
    return make_transaction()


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app(directory, store, clock):
    from walletguard.main import create_application

    return create_application(directory=directory, store=store, clock=clock)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client
