"""Pydantic schemas for subscriptions."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime

from billsync.models.subscription import Frequency
from billsync.schemas.money import Money


class SubscriptionBase(BaseModel):
    merchant_name: str = Field(min_length=1, max_length=255)
    amount: Money = Field(ge=0)
    frequency: Frequency
    next_billing_date: Optional[date] = None


class SubscriptionCreate(SubscriptionBase):
    """User-entered subscription."""
    user_id: str


class SubscriptionResponse(SubscriptionBase):
    id: str
    user_id: Optional[str] = None
    detected_at: datetime
    is_active: bool
    auto_detected: bool

    class Config:
        from_attributes = True


class SubscriptionListResponse(BaseModel):
    items: List[SubscriptionResponse]
    total: int
    monthly_cost: Money


class DetectionResult(BaseModel):
    """Result of recurring detection for a single merchant."""
    merchant_name: str
    average_amount: Money
    frequency: Frequency
    next_billing_date: date
    confidence: float = Field(ge=0, le=1)
