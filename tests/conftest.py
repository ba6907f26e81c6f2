"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timezone
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from finance_cycle.api.dependencies import get_clock
from finance_cycle.api.main import create_app
from finance_cycle.infrastructure.database.models import Base, Card, Loan
from finance_cycle.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

USER_ID = "user_1"


class FrozenClock:
    """Clock that stays put until a test moves it"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def client(db: Session, clock: FrozenClock) -> TestClient:
    """Create FastAPI test client with test database, frozen clock and a signed-in user"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    return TestClient(app, headers={"X-User-ID": USER_ID})


@pytest.fixture
def make_card(db: Session):
    """Insert a card row directly, bypassing the API"""

    def _make_card(**overrides) -> Card:
        values = dict(
            user_id=USER_ID,
            name="Visa",
            credit_limit=5000.0,
            balance=1000.0,
            statement_balance=1000.0,
            pending_charges=0.0,
            spend_per_month=0.0,
            interest_rate_apr=0.0,
            minimum_payment=0.0,
            minimum_payment_policy="fixed",
            minimum_payment_percent=None,
            extra_payment=0.0,
            last_cycle_anchor=datetime(2024, 1, 10, tzinfo=timezone.utc),
        )
        values.update(overrides)
        card = Card(**values)
        db.add(card)
        db.commit()
        return card

    return _make_card


@pytest.fixture
def make_loan(db: Session):
    """Insert a loan row directly, bypassing the API"""

    def _make_loan(**overrides) -> Loan:
        anchor = overrides.pop("last_cycle_anchor", datetime(2024, 1, 10, tzinfo=timezone.utc))
        values = dict(
            user_id=USER_ID,
            name="Car loan",
            balance=12000.0,
            interest_rate_apr=6.0,
            minimum_payment=300.0,
            subscription_cost=0.0,
            cadence="monthly",
            recurrence_anchor=anchor,
            last_cycle_anchor=anchor,
        )
        values.update(overrides)
        loan = Loan(**values)
        db.add(loan)
        db.commit()
        return loan

    return _make_loan
