"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch the
real one. Tables are created before each test and dropped after
it, so every test starts from an empty ledger.
"""

import os

# Must be set before the application is imported: models/base.py
# builds its engine from DATABASE_URL at import time.
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bookkeeping.main import app
from bookkeeping.models.base import Base, get_db
from bookkeeping.models.enums import AccountType, Role
from bookkeeping.models.ledger_account import LedgerAccount
from bookkeeping.models.user import User


TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def session_factory():
    """Open extra sessions, e.g. to play a second concurrent request."""
    sessions = []

    def factory():
        session = TestSessionLocal()
        sessions.append(session)
        return session

    yield factory
    for session in sessions:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    get_db is overridden so the app uses the test session.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# --- Directory data ---

@pytest.fixture
def users(db_session):
    """One active user per role, plus a deactivated clerk."""
    db_session.add_all([
        User(user_id="alice", name="Alice Admin", role=Role.ADMIN),
        User(user_id="maria", name="Maria Manager", role=Role.MANAGER),
        User(user_id="ulrich", name="Ulrich User", role=Role.USER),
        User(user_id="olga", name="Olga Former", role=Role.USER, is_active=False),
    ])
    db_session.commit()
    return {"admin": "alice", "manager": "maria", "user": "ulrich", "inactive": "olga"}


@pytest.fixture
def accounts(db_session):
    """A small chart of accounts: cash, sales, and a retired account."""
    db_session.add_all([
        LedgerAccount(code="cash", name="Cash", account_type=AccountType.ASSET),
        LedgerAccount(code="sales", name="Sales", account_type=AccountType.REVENUE),
        LedgerAccount(code="rent", name="Rent", account_type=AccountType.EXPENSE),
        LedgerAccount(
            code="old-bank", name="Closed Bank Account",
            account_type=AccountType.ASSET, is_active=False,
        ),
    ])
    db_session.commit()
    return ["cash", "sales", "rent", "old-bank"]
