"""Service for stored subscription management."""

from typing import List, Optional
from datetime import datetime
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from billsync.models.subscription import Subscription
from billsync.schemas.subscription import SubscriptionCreate, DetectionResult


def get_active_subscriptions(db: Session, user_id: str) -> List[Subscription]:
    """Active subscriptions for a user, most expensive first."""
    return db.query(Subscription).filter(
        Subscription.user_id == user_id,
        Subscription.is_active == True
    ).order_by(Subscription.amount.desc()).all()


def find_subscription_by_merchant(
    db: Session,
    user_id: str,
    merchant_name: str,
    active_only: bool = False
) -> Optional[Subscription]:
    """Case-insensitive lookup of a user's subscription for a merchant."""
    query = db.query(Subscription).filter(
        Subscription.user_id == user_id,
        func.lower(Subscription.merchant_name) == merchant_name.strip().lower()
    )
    if active_only:
        query = query.filter(Subscription.is_active == True)
    else:
        # Prefer the active row when both exist
        query = query.order_by(Subscription.is_active.desc())
    return query.first()


def upsert_detected_subscription(
    db: Session,
    user_id: str,
    detection: DetectionResult
) -> Optional[Subscription]:
    """
    Store a detected subscription keyed by (user, merchant).

    Returns None when an active subscription for the merchant already
    exists. A previously removed subscription has its amount and next
    billing date refreshed but stays inactive. Otherwise a new
    auto-detected row is inserted.
    """
    existing = find_subscription_by_merchant(db, user_id, detection.merchant_name)

    if existing is not None and existing.is_active:
        return None

    if existing is not None:
        existing.amount = detection.average_amount
        existing.next_billing_date = detection.next_billing_date
        db.commit()
        db.refresh(existing)
        return existing

    subscription = Subscription(
        id=str(uuid.uuid4()),
        user_id=user_id,
        merchant_name=detection.merchant_name,
        amount=detection.average_amount,
        frequency=detection.frequency,
        next_billing_date=detection.next_billing_date,
        detected_at=datetime.utcnow(),
        is_active=True,
        auto_detected=True,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription


def create_subscription(db: Session, data: SubscriptionCreate) -> Subscription:
    """Create a user-entered subscription."""
    if find_subscription_by_merchant(db, data.user_id, data.merchant_name, active_only=True):
        raise ValueError(f"An active subscription for {data.merchant_name} already exists")

    subscription = Subscription(
        id=str(uuid.uuid4()),
        user_id=data.user_id,
        merchant_name=data.merchant_name.strip(),
        amount=data.amount,
        frequency=data.frequency,
        next_billing_date=data.next_billing_date,
        detected_at=datetime.utcnow(),
        is_active=True,
        auto_detected=False,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription


def deactivate_subscription(db: Session, subscription_id: str) -> bool:
    """Soft-delete a subscription. Returns False if it does not exist."""
    subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
    if not subscription:
        return False

    subscription.is_active = False
    db.commit()
    return True
