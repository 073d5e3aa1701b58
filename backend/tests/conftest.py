"""Shared test fixtures."""

import os

# Use litellm's bundled model cost map instead of fetching it over the network at import.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from billsync.database import Base
from billsync.dependencies import get_db, get_banking_client
from billsync.exceptions import ProviderUnavailable
from billsync.main import app
from billsync.models.user import User
from billsync.models.transaction import Transaction, TransactionType
from billsync.models.subscription import Subscription, Frequency
from billsync.schemas.banking import BasiqTransaction


class FakeBankingClient:
    """In-memory stand-in for the banking provider client."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.transactions: List[BasiqTransaction] = []
        self.balance = Decimal("0")
        self.error: Optional[ProviderUnavailable] = None
        self.calls: List[tuple] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def fetch_transactions(self, user_id, from_date, to_date):
        self.calls.append(("transactions", user_id, from_date, to_date))
        if self.error:
            raise self.error
        return [
            t for t in self.transactions
            if from_date.isoformat() <= t.post_date[:10] <= to_date.isoformat()
        ]

    async def fetch_total_balance(self, user_id):
        self.calls.append(("balance", user_id))
        if self.error:
            raise self.error
        return self.balance

    async def fetch_accounts(self, user_id):
        self.calls.append(("accounts", user_id))
        if self.error:
            raise self.error
        return []


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test using in-memory SQLite."""
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def fake_banking():
    """A configured fake banking client with no data."""
    return FakeBankingClient()


@pytest.fixture(scope="function")
def client(db_session, fake_banking):
    """Create a test client with database and banking overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_banking_client] = lambda: fake_banking
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_raw_transaction():
    """Build provider transactions in the provider's JSON shape."""
    def _make(
        txn_id: str,
        amount: str,
        txn_date: date,
        description: Optional[str] = "NETFLIX.COM SYDNEY",
        business_name: Optional[str] = "Netflix",
        direction: Optional[str] = None,
        division_title: Optional[str] = None,
    ) -> BasiqTransaction:
        if direction is None:
            direction = "debit" if amount.startswith("-") else "credit"
        enrich = {}
        if business_name:
            enrich["merchant"] = {"businessName": business_name}
        if division_title:
            enrich["category"] = {"anzsic": {"division": {"title": division_title}}}
        return BasiqTransaction.model_validate({
            "id": txn_id,
            "status": "posted",
            "description": description,
            "amount": amount,
            "direction": direction,
            "class": "payment",
            "postDate": f"{txn_date.isoformat()}T00:00:00Z",
            "transactionDate": txn_date.isoformat(),
            "enrich": enrich or None,
        })
    return _make


@pytest.fixture
def sample_user(db_session):
    """Create a sample local user mapped to a provider user."""
    user = User(
        id=str(uuid.uuid4()),
        external_id="basiq-user-1",
        email="test@example.com",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def sample_transaction(db_session, sample_user):
    """Create a sample stored transaction."""
    txn = Transaction(
        id=str(uuid.uuid4()),
        external_id="txn-existing",
        user_id=sample_user.id,
        merchant_name="Woolworths",
        amount=Decimal("50.00"),
        type=TransactionType.expense,
        category="food-dining",
        transaction_date=date(2024, 1, 15),
        description="WOOLWORTHS 1234",
    )
    db_session.add(txn)
    db_session.commit()
    db_session.refresh(txn)
    return txn


@pytest.fixture
def sample_subscription(db_session, sample_user):
    """Create a sample active subscription."""
    subscription = Subscription(
        id=str(uuid.uuid4()),
        user_id=sample_user.id,
        merchant_name="Netflix",
        amount=Decimal("22.99"),
        frequency=Frequency.monthly,
        next_billing_date=date(2024, 2, 1),
        detected_at=datetime(2024, 1, 1),
        is_active=True,
        auto_detected=True,
    )
    db_session.add(subscription)
    db_session.commit()
    db_session.refresh(subscription)
    return subscription
