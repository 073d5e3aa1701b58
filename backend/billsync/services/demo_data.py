"""
Deterministic demo dataset served when no banking provider is configured.

The same ``today`` always yields the same summary.
"""

import random
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional

from billsync.models.subscription import Frequency
from billsync.models.transaction import TransactionType
from billsync.schemas.subscription import SubscriptionResponse
from billsync.schemas.sync import SyncSummary
from billsync.schemas.transaction import TransactionResponse
from billsync.services.subscription_detector import calculate_monthly_cost

DEMO_USER_ID = "demo-user"
DEMO_SEED = 20240101
DEMO_OPENING_BALANCE = Decimal("12847.50")
DEMO_DAYS = 30

DEMO_MERCHANTS = [
    {"name": "Woolworths", "category": "food-dining", "type": TransactionType.expense, "range": (20, 150)},
    {"name": "Coles", "category": "food-dining", "type": TransactionType.expense, "range": (15, 120)},
    {"name": "Uber Eats", "category": "food-dining", "type": TransactionType.expense, "range": (20, 60)},
    {"name": "Shell", "category": "transportation", "type": TransactionType.expense, "range": (40, 100)},
    {"name": "Netflix", "category": "entertainment", "type": TransactionType.expense, "range": (16, 23)},
    {"name": "Spotify", "category": "entertainment", "type": TransactionType.expense, "range": (12, 12)},
    {"name": "Origin Energy", "category": "bills-utilities", "type": TransactionType.expense, "range": (80, 200)},
    {"name": "Telstra", "category": "bills-utilities", "type": TransactionType.expense, "range": (89, 89)},
    {"name": "JB Hi-Fi", "category": "shopping", "type": TransactionType.expense, "range": (50, 500)},
    {"name": "Employer Salary", "category": "income", "type": TransactionType.income, "range": (3500, 4500)},
    {"name": "Interest", "category": "income", "type": TransactionType.income, "range": (5, 20)},
]

DEMO_SUBSCRIPTIONS = [
    # (id, merchant, amount, days until next bill, auto detected)
    ("sub-1", "Netflix", Decimal("22.99"), 15, True),
    ("sub-2", "Spotify", Decimal("11.99"), 8, True),
    ("sub-3", "Telstra", Decimal("89.00"), 22, False),
]


def build_demo_transactions(today: date) -> List[TransactionResponse]:
    rng = random.Random(DEMO_SEED)
    transactions = []

    for day in range(DEMO_DAYS):
        txn_date = today - timedelta(days=day)
        for j in range(rng.randint(1, 4)):
            merchant = rng.choice(DEMO_MERCHANTS)
            low, high = merchant["range"]
            amount = Decimal(str(round(low + rng.random() * (high - low), 2)))

            transactions.append(TransactionResponse(
                id=f"mock-{day}-{j}",
                external_id=f"basiq-{day}-{j}",
                user_id=DEMO_USER_ID,
                merchant_name=merchant["name"],
                amount=amount,
                type=merchant["type"],
                category=merchant["category"],
                transaction_date=txn_date,
                description=None,
            ))
    return transactions


def build_demo_subscriptions(today: date) -> List[SubscriptionResponse]:
    detected_at = datetime.combine(today, time.min)
    return [
        SubscriptionResponse(
            id=sub_id,
            user_id=DEMO_USER_ID,
            merchant_name=merchant,
            amount=amount,
            frequency=Frequency.monthly,
            next_billing_date=today + timedelta(days=days_ahead),
            detected_at=detected_at,
            is_active=True,
            auto_detected=auto_detected,
        )
        for sub_id, merchant, amount, days_ahead, auto_detected in DEMO_SUBSCRIPTIONS
    ]


def build_demo_summary(today: Optional[date] = None, synced_at: Optional[datetime] = None) -> SyncSummary:
    """Build the demo sync summary for the given day."""
    today = today or date.today()
    transactions = build_demo_transactions(today)
    subscriptions = build_demo_subscriptions(today)

    total_income = sum((t.amount for t in transactions if t.type == TransactionType.income), Decimal("0"))
    total_expenses = sum((t.amount for t in transactions if t.type == TransactionType.expense), Decimal("0"))

    return SyncSummary(
        transactions=transactions,
        subscriptions=subscriptions,
        balance=DEMO_OPENING_BALANCE + total_income - total_expenses,
        transactions_added=len(transactions),
        subscriptions_detected=0,
        monthly_subscription_cost=calculate_monthly_cost(subscriptions),
        last_sync_at=synced_at or datetime.utcnow(),
    )
