"""
Database models package.
"""

from billsync.models.user import User
from billsync.models.transaction import Transaction, TransactionType
from billsync.models.subscription import Subscription, Frequency
from billsync.models.recommendation import AIRecommendation

__all__ = [
    "User",
    "Transaction",
    "TransactionType",
    "Subscription",
    "Frequency",
    "AIRecommendation",
]
