"""Service for spending snapshots and cached AI recommendations."""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional
import uuid

from pydantic import ValidationError
from sqlalchemy.orm import Session

from billsync.ai.client import get_ai_client
from billsync.ai.prompts import RECOMMENDATIONS_SYSTEM, RECOMMENDATIONS_USER
from billsync.config import settings
from billsync.models.recommendation import AIRecommendation
from billsync.models.transaction import TransactionType
from billsync.schemas.recommendation import (
    CategoryBreakdown,
    Recommendation,
    RecommendationsResponse,
    SpendingSnapshot,
)
from billsync.services.reconciliation_service import get_user_transactions
from billsync.services.subscription_detector import calculate_monthly_cost
from billsync.services.subscription_service import get_active_subscriptions

logger = logging.getLogger(__name__)

CATEGORY_NAMES: Dict[str, str] = {
    "food-dining": "Food & Dining",
    "bills-utilities": "Bills & Utilities",
    "transportation": "Transportation",
    "entertainment": "Entertainment",
    "shopping": "Shopping",
    "health": "Health",
    "transfer": "Transfer",
    "income": "Income",
    "other": "Other",
}


def build_spending_snapshot(db: Session, user_id: str, now: Optional[datetime] = None) -> SpendingSnapshot:
    """
    Aggregate the last period of spending against the period before it.
    Periods are ``insights_period_days`` long (14 by default).
    """
    now = now or datetime.utcnow()
    period = timedelta(days=settings.insights_period_days)
    period_start = now - period
    previous_start = now - 2 * period

    transactions = get_user_transactions(db, user_id, previous_start.date(), now.date())
    current = [t for t in transactions if t.transaction_date >= period_start.date()]
    previous = [t for t in transactions if t.transaction_date < period_start.date()]

    category_totals: Dict[str, Decimal] = {}
    expenses = Decimal("0")
    income = Decimal("0")
    for t in current:
        if t.type == TransactionType.expense:
            category = t.category or "other"
            category_totals[category] = category_totals.get(category, Decimal("0")) + t.amount
            expenses += t.amount
        elif t.type == TransactionType.income:
            income += t.amount

    breakdown = [
        CategoryBreakdown(
            category=category,
            name=CATEGORY_NAMES.get(category, category),
            amount=amount,
            percentage=float(amount / expenses * 100) if expenses > 0 else 0.0,
        )
        for category, amount in sorted(category_totals.items(), key=lambda x: x[1], reverse=True)
    ]

    previous_total = sum(
        (t.amount for t in previous if t.type == TransactionType.expense), Decimal("0")
    )
    subscriptions = get_active_subscriptions(db, user_id)

    return SpendingSnapshot(
        period_start=period_start,
        period_end=now,
        breakdown=breakdown,
        previous_period_total=previous_total,
        top_categories=[c.name for c in breakdown[:3]],
        subscription_count=len(subscriptions),
        subscription_total=calculate_monthly_cost(subscriptions),
        income=income,
        expenses=expenses,
        net=income - expenses,
    )


def get_cached_recommendations(db: Session, user_id: str, now: Optional[datetime] = None) -> Optional[AIRecommendation]:
    """Most recent unexpired recommendation set for a user."""
    now = now or datetime.utcnow()
    return db.query(AIRecommendation).filter(
        AIRecommendation.user_id == user_id,
        AIRecommendation.expires_at > now
    ).order_by(AIRecommendation.generated_at.desc()).first()


def save_recommendations(
    db: Session,
    user_id: str,
    recommendations: List[Recommendation],
    snapshot: SpendingSnapshot,
    now: Optional[datetime] = None
) -> AIRecommendation:
    now = now or datetime.utcnow()
    record = AIRecommendation(
        id=str(uuid.uuid4()),
        user_id=user_id,
        recommendations=[r.model_dump() for r in recommendations],
        analysis_period_start=snapshot.period_start,
        analysis_period_end=snapshot.period_end,
        generated_at=now,
        expires_at=now + timedelta(hours=settings.recommendation_ttl_hours),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def fallback_recommendations(snapshot: SpendingSnapshot) -> List[Recommendation]:
    """Deterministic recommendations used when the AI generator is unavailable."""
    top_category = snapshot.top_categories[0] if snapshot.top_categories else "not yet determined"
    return [
        Recommendation(
            icon="📊",
            title="Track Your Top Category",
            analysis=f"Your highest spending category is {top_category}.",
            action="Set a weekly budget limit and monitor daily spending.",
        ),
        Recommendation(
            icon="🔄",
            title="Review Subscriptions",
            analysis=(
                f"You have {snapshot.subscription_count} active subscriptions totaling "
                f"${snapshot.subscription_total:.2f}/month."
            ),
            action="Consider consolidating or canceling unused services.",
        ),
        Recommendation(
            icon="💰",
            title="Build Your Savings",
            analysis=f"Your net savings this period is ${snapshot.net:.2f}.",
            action=(
                "Great job! Aim to save 20% of income."
                if snapshot.net > 0
                else "Focus on reducing expenses by 10%."
            ),
        ),
    ]


def format_user_prompt(snapshot: SpendingSnapshot) -> str:
    category_breakdown = "\n".join(
        f"{c.name}: ${c.amount:.2f} ({c.percentage:.1f}%)" for c in snapshot.breakdown
    ) or "No expenses recorded"

    return RECOMMENDATIONS_USER.format(
        category_breakdown=category_breakdown,
        previous_total=f"{snapshot.previous_period_total:.2f}",
        top_categories=", ".join(snapshot.top_categories) or "none",
        subscription_count=snapshot.subscription_count,
        subscription_total=f"{snapshot.subscription_total:.2f}",
        income=f"{snapshot.income:.2f}",
        expenses=f"{snapshot.expenses:.2f}",
        net=f"{snapshot.net:.2f}",
    )


async def generate_recommendations(snapshot: SpendingSnapshot) -> List[Recommendation]:
    """
    Ask the AI generator for exactly three recommendations.
    Any failure, or an unconfigured generator, yields the fallback set.
    """
    client = get_ai_client()
    if not client.is_configured:
        return fallback_recommendations(snapshot)

    try:
        result = await client.complete_json(
            system_prompt=RECOMMENDATIONS_SYSTEM,
            user_prompt=format_user_prompt(snapshot),
            temperature=0.4,
            max_tokens=800
        )
        items = result.get("recommendations", [])
        recommendations = [Recommendation.model_validate(item) for item in items]
        if len(recommendations) != 3:
            raise ValueError(f"Expected 3 recommendations, got {len(recommendations)}")
        return recommendations
    except (ValidationError, ValueError, AttributeError) as e:
        logger.warning("AI recommendations were malformed, using fallback: %s", e)
    except Exception as e:
        logger.error("AI recommendation generation failed, using fallback: %s", e)
    return fallback_recommendations(snapshot)


def to_response(record: AIRecommendation, cached: bool) -> RecommendationsResponse:
    return RecommendationsResponse(
        recommendations=[Recommendation.model_validate(r) for r in record.recommendations],
        generated_at=record.generated_at,
        expires_at=record.expires_at,
        cached=cached,
    )


async def get_or_generate_recommendations(
    db: Session,
    user_id: str,
    now: Optional[datetime] = None
) -> RecommendationsResponse:
    """Serve cached recommendations, or generate, cache and return a new set."""
    now = now or datetime.utcnow()

    cached = get_cached_recommendations(db, user_id, now)
    if cached:
        return to_response(cached, cached=True)

    snapshot = build_spending_snapshot(db, user_id, now)
    recommendations = await generate_recommendations(snapshot)
    record = save_recommendations(db, user_id, recommendations, snapshot, now)
    return to_response(record, cached=False)
