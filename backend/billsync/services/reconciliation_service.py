"""
Reconciliation of fetched transactions with stored ones.

The provider's transaction id is the idempotency key: syncing the same
window any number of times leaves one stored row per user and provider
transaction. Another user's row with the same provider id is never touched.
"""

import logging
import uuid
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from billsync.models.transaction import Transaction
from billsync.schemas.transaction import NormalizedTransaction

logger = logging.getLogger(__name__)


def get_existing_by_external_id(db: Session, user_id: str, external_ids: List[str]) -> Dict[str, Transaction]:
    """Load a user's stored transactions for the given provider ids."""
    if not external_ids:
        return {}
    rows = db.query(Transaction).filter(
        Transaction.user_id == user_id,
        Transaction.external_id.in_(external_ids)
    ).all()
    return {row.external_id: row for row in rows}


def _merge_once(db: Session, user_id: str, transactions: List[NormalizedTransaction]) -> int:
    existing = get_existing_by_external_id(db, user_id, [t.external_id for t in transactions])

    inserted = 0
    for txn in transactions:
        row = existing.get(txn.external_id)
        if row is not None:
            # Only display fields are refreshed
            row.merchant_name = txn.merchant_name
            row.category = txn.category
            row.description = txn.description
            continue

        row = Transaction(
            id=str(uuid.uuid4()),
            external_id=txn.external_id,
            user_id=user_id,
            merchant_name=txn.merchant_name,
            amount=txn.amount,
            type=txn.type,
            category=txn.category,
            transaction_date=txn.transaction_date,
            description=txn.description,
        )
        db.add(row)
        existing[txn.external_id] = row
        inserted += 1

    db.commit()
    return inserted


def merge_transactions(db: Session, user_id: str, transactions: List[NormalizedTransaction]) -> int:
    """
    Upsert normalized transactions for a user.
    Returns the number of newly inserted rows.
    """
    if not transactions:
        return 0

    try:
        return _merge_once(db, user_id, transactions)
    except IntegrityError:
        # A concurrent sync inserted some of the same ids; the retry sees them as existing
        db.rollback()
        logger.info("Transaction merge collided with a concurrent sync, retrying")
        return _merge_once(db, user_id, transactions)


def count_user_transactions(db: Session, user_id: str) -> int:
    return db.query(Transaction).filter(Transaction.user_id == user_id).count()


def get_user_transactions(
    db: Session,
    user_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> List[Transaction]:
    """Stored transactions for a user within an inclusive date range, newest first."""
    query = db.query(Transaction).filter(Transaction.user_id == user_id)
    if start_date:
        query = query.filter(Transaction.transaction_date >= start_date)
    if end_date:
        query = query.filter(Transaction.transaction_date <= end_date)
    return query.order_by(Transaction.transaction_date.desc()).all()
