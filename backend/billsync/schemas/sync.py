"""
Sync request and summary schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from billsync.schemas.money import Money
from billsync.schemas.transaction import TransactionResponse
from billsync.schemas.subscription import SubscriptionResponse


class SyncRequest(BaseModel):
    basiq_user_id: str = Field(min_length=1)


class SyncSummary(BaseModel):
    transactions: List[TransactionResponse]
    subscriptions: List[SubscriptionResponse]
    balance: Money
    transactions_added: int
    subscriptions_detected: int
    monthly_subscription_cost: Money
    last_sync_at: datetime


class SyncResponse(BaseModel):
    """Outcome of a sync. ``data`` is only present when ``success`` is true."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None
    persisted: bool = False
    data: Optional[SyncSummary] = None
