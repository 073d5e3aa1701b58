"""Tests for sync orchestration."""

import asyncio
import pytest
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from billsync.exceptions import ProviderUnavailable
from billsync.models.subscription import Frequency, Subscription
from billsync.models.transaction import Transaction
from billsync.services import sync_service
from billsync.services.reconciliation_service import count_user_transactions

TODAY = date(2024, 4, 1)
NOW = datetime(2024, 4, 1, 9, 30)


@pytest.fixture
def netflix_history(fake_banking, make_raw_transaction):
    """Three monthly Netflix charges plus some noise inside the sync window."""
    fake_banking.balance = Decimal("2500.00")
    fake_banking.transactions = [
        make_raw_transaction("nf-1", "-22.99", date(2024, 1, 15)),
        make_raw_transaction("nf-2", "-22.99", date(2024, 2, 14)),
        make_raw_transaction("nf-3", "-22.99", date(2024, 3, 15)),
        make_raw_transaction(
            "wool-1", "-64.30", date(2024, 3, 20),
            description="WOOLWORTHS 1234", business_name="Woolworths", division_title="Retail Trade",
        ),
        make_raw_transaction(
            "pay-1", "3500.00", date(2024, 3, 28),
            description="ACME SALARY", business_name=None,
        ),
        # Outside the 90 day window
        make_raw_transaction("old-1", "-22.99", date(2023, 12, 1)),
    ]
    return fake_banking


class TestDemoMode:
    """Test the unconfigured provider path."""

    @pytest.mark.asyncio
    async def test_demo_is_deterministic(self, db_session, fake_banking):
        """Demo data should not change between calls."""
        fake_banking.configured = False

        first = await sync_service.sync_user(db_session, fake_banking, "anyone", today=TODAY, now=NOW)
        second = await sync_service.sync_user(db_session, fake_banking, "anyone", today=TODAY, now=NOW)

        assert first.success is True
        assert first.message == sync_service.DEMO_MESSAGE
        assert first.data == second.data
        assert fake_banking.calls == []

    @pytest.mark.asyncio
    async def test_demo_summary_shape(self, db_session, fake_banking):
        """Demo summary should hold three subscriptions and store nothing."""
        fake_banking.configured = False

        result = await sync_service.sync_user(db_session, fake_banking, "anyone", today=TODAY, now=NOW)

        data = result.data
        assert [s.merchant_name for s in data.subscriptions] == ["Netflix", "Spotify", "Telstra"]
        assert data.monthly_subscription_cost == Decimal("123.98")
        assert data.transactions_added == len(data.transactions)
        assert all(t.amount >= 0 for t in data.transactions)
        assert db_session.query(Transaction).count() == 0


class TestProviderFailure:
    """Test provider errors surface as a failed sync."""

    @pytest.mark.asyncio
    async def test_provider_unavailable(self, db_session, sample_user, netflix_history):
        """Provider failures should fail the sync and store nothing."""
        netflix_history.error = ProviderUnavailable("Banking provider returned 503", status_code=503)

        result = await sync_service.sync_user(db_session, netflix_history, "basiq-user-1", today=TODAY, now=NOW)

        assert result.success is False
        assert result.error == "provider_unavailable"
        assert result.data is None
        assert count_user_transactions(db_session, sample_user.id) == 0
        db_session.refresh(sample_user)
        assert sample_user.last_sync_at is None

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, db_session, netflix_history, monkeypatch):
        """Unexpected errors should become a failed sync."""
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(sync_service, "normalize_transactions", broken)

        result = await sync_service.sync_user(db_session, netflix_history, "basiq-user-1", today=TODAY, now=NOW)

        assert result.success is False
        assert result.error == "sync_failed"
        assert result.details == "boom"


class SlowBalanceClient:
    """Transactions fail at once while the balance fetch is still running."""

    def __init__(self, balance_error=None):
        self.balance_error = balance_error
        self.balance_finished = False

    async def fetch_transactions(self, user_id, from_date, to_date):
        raise ProviderUnavailable("transactions down", status_code=503)

    async def fetch_total_balance(self, user_id):
        await asyncio.sleep(0.01)
        self.balance_finished = True
        if self.balance_error:
            raise self.balance_error
        return Decimal("10.00")


class TestFetchWindow:
    """Test the concurrent transaction and balance fetch."""

    @pytest.mark.asyncio
    async def test_sibling_fetch_completes_before_error(self):
        """A failed transaction fetch should not leave the balance fetch running."""
        banking = SlowBalanceClient()

        with pytest.raises(ProviderUnavailable, match="transactions down"):
            await sync_service.fetch_window(banking, "user-1", date(2024, 1, 1), TODAY)

        assert banking.balance_finished is True

    @pytest.mark.asyncio
    async def test_first_error_wins_when_both_fail(self):
        """Both failures are collected and the transaction error is raised."""
        banking = SlowBalanceClient(balance_error=ProviderUnavailable("balance down"))

        with pytest.raises(ProviderUnavailable, match="transactions down"):
            await sync_service.fetch_window(banking, "user-1", date(2024, 1, 1), TODAY)

        assert banking.balance_finished is True

    @pytest.mark.asyncio
    async def test_returns_both_results(self, netflix_history):
        """Successful fetches return the window and the balance."""
        transactions, balance = await sync_service.fetch_window(
            netflix_history, "basiq-user-1", date(2024, 1, 2), TODAY
        )

        assert len(transactions) == 5
        assert balance == Decimal("2500.00")


class TestPersistedSync:
    """Test the path with a known local user."""

    @pytest.mark.asyncio
    async def test_fetches_ninety_day_window(self, db_session, sample_user, netflix_history):
        """Sync should fetch the last 90 days and the balance."""
        await sync_service.sync_user(db_session, netflix_history, "basiq-user-1", today=TODAY, now=NOW)

        assert ("transactions", "basiq-user-1", date(2024, 1, 2), TODAY) in netflix_history.calls
        assert ("balance", "basiq-user-1") in netflix_history.calls

    @pytest.mark.asyncio
    async def test_netflix_end_to_end(self, db_session, sample_user, netflix_history):
        """Monthly Netflix charges should be stored and detected."""
        result = await sync_service.sync_user(db_session, netflix_history, "basiq-user-1", today=TODAY, now=NOW)

        assert result.success is True
        assert result.persisted is True
        data = result.data
        assert data.balance == Decimal("2500.00")
        assert data.transactions_added == 5
        assert data.subscriptions_detected == 1
        assert data.last_sync_at == NOW

        subscription = data.subscriptions[0]
        assert subscription.merchant_name == "Netflix"
        assert subscription.amount == Decimal("22.99")
        assert subscription.frequency == Frequency.monthly
        assert subscription.next_billing_date == date(2024, 4, 14)
        assert data.monthly_subscription_cost == Decimal("22.99")

        # Only the last 30 days, newest first
        assert [t.external_id for t in data.transactions] == ["pay-1", "wool-1", "nf-3"]

        db_session.refresh(sample_user)
        assert sample_user.last_sync_at == NOW

    @pytest.mark.asyncio
    async def test_repeated_sync_is_idempotent(self, db_session, sample_user, netflix_history):
        """Syncing twice should add nothing new."""
        await sync_service.sync_user(db_session, netflix_history, "basiq-user-1", today=TODAY, now=NOW)
        second = await sync_service.sync_user(db_session, netflix_history, "basiq-user-1", today=TODAY, now=NOW)

        assert second.data.transactions_added == 0
        assert second.data.subscriptions_detected == 0
        assert [s.merchant_name for s in second.data.subscriptions] == ["Netflix"]
        assert count_user_transactions(db_session, sample_user.id) == 5
        assert db_session.query(Subscription).count() == 1

    @pytest.mark.asyncio
    async def test_removed_subscription_not_resurrected(self, db_session, sample_user, netflix_history):
        """Removed subscriptions should not be detected again."""
        first = await sync_service.sync_user(db_session, netflix_history, "basiq-user-1", today=TODAY, now=NOW)
        subscription = db_session.query(Subscription).filter(
            Subscription.id == first.data.subscriptions[0].id
        ).one()
        subscription.is_active = False
        db_session.commit()

        second = await sync_service.sync_user(db_session, netflix_history, "basiq-user-1", today=TODAY, now=NOW)

        assert second.data.subscriptions == []
        assert second.data.subscriptions_detected == 0
        db_session.refresh(subscription)
        assert subscription.is_active is False


class TestTransientSync:
    """Test paths where nothing is persisted."""

    @pytest.mark.asyncio
    async def test_no_local_user(self, db_session, netflix_history):
        """Unknown users should get an unpersisted summary."""
        result = await sync_service.sync_user(db_session, netflix_history, "unregistered", today=TODAY, now=NOW)

        assert result.success is True
        assert result.persisted is False
        assert result.data.transactions_added == 5
        assert result.data.subscriptions_detected == 1
        assert result.data.subscriptions[0].id == "new-0"
        assert result.data.subscriptions[0].merchant_name == "Netflix"
        assert db_session.query(Transaction).count() == 0

    @pytest.mark.asyncio
    async def test_storage_failure_degrades(self, db_session, sample_user, netflix_history, monkeypatch):
        """Storage failures should degrade to an unpersisted summary."""
        def unavailable(db, external_id):
            raise OperationalError("SELECT", {}, Exception("db down"))

        monkeypatch.setattr(sync_service, "get_user_by_external_id", unavailable)

        result = await sync_service.sync_user(db_session, netflix_history, "basiq-user-1", today=TODAY, now=NOW)

        assert result.success is True
        assert result.persisted is False
        assert result.data.subscriptions_detected == 1
        assert result.data.monthly_subscription_cost == Decimal("22.99")
        assert count_user_transactions(db_session, sample_user.id) == 0
