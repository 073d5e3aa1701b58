"""
Spending snapshot and recommendation schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from billsync.schemas.money import Money


class Recommendation(BaseModel):
    icon: str
    title: str = Field(max_length=100)
    analysis: str = Field(max_length=200)
    action: str = Field(max_length=150)


class CategoryBreakdown(BaseModel):
    category: str
    name: str
    amount: Money
    percentage: float


class SpendingSnapshot(BaseModel):
    """Pre-aggregated spend figures handed to the recommendation generator."""
    period_start: datetime
    period_end: datetime
    breakdown: List[CategoryBreakdown]
    previous_period_total: Money
    top_categories: List[str]
    subscription_count: int
    subscription_total: Money
    income: Money
    expenses: Money
    net: Money


class RecommendationRequest(BaseModel):
    user_id: str


class RecommendationsResponse(BaseModel):
    recommendations: Optional[List[Recommendation]] = None
    generated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    cached: bool = False
