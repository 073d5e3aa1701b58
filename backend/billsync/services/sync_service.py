"""
Sync orchestration: fetch from the banking provider, reconcile with stored
state, detect subscriptions and build the summary returned to the caller.

``sync_user`` never raises. Provider failures become a failed
``SyncResponse``; storage failures degrade to an unpersisted summary.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from billsync.banking.client import BasiqClient
from billsync.config import settings
from billsync.exceptions import ProviderUnavailable, StorageUnavailable
from billsync.models.subscription import Subscription
from billsync.models.transaction import Transaction
from billsync.schemas.banking import BasiqTransaction
from billsync.schemas.subscription import DetectionResult, SubscriptionResponse
from billsync.schemas.sync import SyncResponse, SyncSummary
from billsync.schemas.transaction import NormalizedTransaction, TransactionResponse
from billsync.services.demo_data import build_demo_summary
from billsync.services.normalizer import normalize_transactions
from billsync.services.reconciliation_service import get_user_transactions, merge_transactions
from billsync.services.subscription_detector import calculate_monthly_cost, detect_subscriptions
from billsync.services.subscription_service import get_active_subscriptions, upsert_detected_subscription
from billsync.services.user_service import get_user_by_external_id, update_last_sync

logger = logging.getLogger(__name__)

DEMO_MESSAGE = "Demo mode - banking provider not configured"


@dataclass
class PersistedSync:
    """What a persisted sync wrote and read back."""
    inserted: int
    transactions: List[Transaction]
    existing_subscriptions: List[Subscription]
    new_subscriptions: List[Subscription] = field(default_factory=list)


async def fetch_window(
    banking_client: BasiqClient,
    basiq_user_id: str,
    from_date: date,
    to_date: date
) -> Tuple[List[BasiqTransaction], Decimal]:
    """
    Fetch the transaction window and total balance concurrently.
    Both fetches always finish; the first failure is re-raised afterwards.
    """
    results = await asyncio.gather(
        banking_client.fetch_transactions(basiq_user_id, from_date, to_date),
        banking_client.fetch_total_balance(basiq_user_id),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result

    transactions, balance = results
    return transactions, balance


def persist_sync(
    db: Session,
    basiq_user_id: str,
    transactions: List[NormalizedTransaction],
    from_date: date,
    to_date: date,
    synced_at: datetime
) -> Optional[PersistedSync]:
    """
    Reconcile, detect and store for a known local user.

    Returns None when no local user maps to the provider id. Raises
    StorageUnavailable if the database fails; upserts committed before the
    failure stay committed and converge on the next sync.
    """
    try:
        user = get_user_by_external_id(db, basiq_user_id)
        if user is None:
            logger.info("No local user for provider user %s, skipping persistence", basiq_user_id)
            return None

        inserted = merge_transactions(db, user.id, transactions)
        existing = get_active_subscriptions(db, user.id)
        window = get_user_transactions(db, user.id, from_date, to_date)

        created = []
        for detection in detect_subscriptions(window, existing):
            subscription = upsert_detected_subscription(db, user.id, detection)
            if subscription is not None and subscription.is_active:
                created.append(subscription)

        update_last_sync(db, user, synced_at)

        logger.info(
            "Synced provider user %s: %d new transactions, %d new subscriptions",
            basiq_user_id, inserted, len(created)
        )
        return PersistedSync(
            inserted=inserted,
            transactions=window,
            existing_subscriptions=existing,
            new_subscriptions=created,
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageUnavailable(str(e)) from e


def _transient_subscriptions(detections: List[DetectionResult], detected_at: datetime) -> List[SubscriptionResponse]:
    return [
        SubscriptionResponse(
            id=f"new-{i}",
            merchant_name=d.merchant_name,
            amount=d.average_amount,
            frequency=d.frequency,
            next_billing_date=d.next_billing_date,
            detected_at=detected_at,
            is_active=True,
            auto_detected=True,
        )
        for i, d in enumerate(detections)
    ]


def _recent(transactions: List[TransactionResponse], cutoff: date) -> List[TransactionResponse]:
    recent = [t for t in transactions if t.transaction_date >= cutoff]
    recent.sort(key=lambda t: t.transaction_date, reverse=True)
    return recent


async def run_sync(
    db: Session,
    banking_client: BasiqClient,
    basiq_user_id: str,
    today: date,
    now: datetime
) -> SyncResponse:
    from_date = today - timedelta(days=settings.sync_window_days)
    recent_cutoff = today - timedelta(days=settings.summary_window_days)

    raw_transactions, balance = await fetch_window(banking_client, basiq_user_id, from_date, today)
    normalized = normalize_transactions(raw_transactions)

    persisted: Optional[PersistedSync] = None
    try:
        persisted = persist_sync(db, basiq_user_id, normalized, from_date, today, now)
    except StorageUnavailable as e:
        logger.warning("Storage unavailable during sync for %s, returning unpersisted data: %s", basiq_user_id, e)

    if persisted is not None:
        transactions = [TransactionResponse.model_validate(t) for t in persisted.transactions]
        subscriptions = [
            SubscriptionResponse.model_validate(s)
            for s in persisted.existing_subscriptions + persisted.new_subscriptions
        ]
        transactions_added = persisted.inserted
        subscriptions_detected = len(persisted.new_subscriptions)
    else:
        detections = detect_subscriptions(normalized)
        transactions = [TransactionResponse(id=t.external_id, **t.model_dump()) for t in normalized]
        subscriptions = _transient_subscriptions(detections, now)
        transactions_added = len(normalized)
        subscriptions_detected = len(detections)

    summary = SyncSummary(
        transactions=_recent(transactions, recent_cutoff),
        subscriptions=subscriptions,
        balance=balance,
        transactions_added=transactions_added,
        subscriptions_detected=subscriptions_detected,
        monthly_subscription_cost=calculate_monthly_cost(subscriptions),
        last_sync_at=now,
    )
    return SyncResponse(success=True, persisted=persisted is not None, data=summary)


async def sync_user(
    db: Session,
    banking_client: BasiqClient,
    basiq_user_id: str,
    today: Optional[date] = None,
    now: Optional[datetime] = None
) -> SyncResponse:
    """
    Sync a provider user's transactions and detect subscriptions.
    Falls back to the demo dataset when the provider is not configured.
    """
    now = now or datetime.utcnow()
    today = today or now.date()

    if not banking_client.is_configured:
        logger.info("Banking provider not configured, serving demo data")
        return SyncResponse(success=True, message=DEMO_MESSAGE, data=build_demo_summary(today, now))

    try:
        return await run_sync(db, banking_client, basiq_user_id, today, now)
    except ProviderUnavailable as e:
        logger.error("Sync failed for provider user %s: %s", basiq_user_id, e)
        return SyncResponse(
            success=False,
            message="Sync failed",
            error="provider_unavailable",
            details=str(e),
        )
    except Exception as e:
        logger.exception("Unexpected error syncing provider user %s", basiq_user_id)
        return SyncResponse(
            success=False,
            message="Sync failed",
            error="sync_failed",
            details=str(e),
        )
