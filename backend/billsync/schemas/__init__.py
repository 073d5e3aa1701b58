"""
Pydantic schemas package.
"""

from billsync.schemas.banking import (
    BasiqTransaction,
    BasiqAccount,
    AccountsResponse,
)
from billsync.schemas.transaction import (
    NormalizedTransaction,
    TransactionResponse,
    TransactionListResponse,
)
from billsync.schemas.subscription import (
    SubscriptionBase,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionListResponse,
    DetectionResult,
)
from billsync.schemas.sync import (
    SyncRequest,
    SyncSummary,
    SyncResponse,
)
from billsync.schemas.recommendation import (
    Recommendation,
    CategoryBreakdown,
    SpendingSnapshot,
    RecommendationRequest,
    RecommendationsResponse,
)
from billsync.schemas.user import (
    UserCreate,
    UserResponse,
)

__all__ = [
    "BasiqTransaction",
    "BasiqAccount",
    "AccountsResponse",
    "NormalizedTransaction",
    "TransactionResponse",
    "TransactionListResponse",
    "SubscriptionBase",
    "SubscriptionCreate",
    "SubscriptionResponse",
    "SubscriptionListResponse",
    "DetectionResult",
    "SyncRequest",
    "SyncSummary",
    "SyncResponse",
    "Recommendation",
    "CategoryBreakdown",
    "SpendingSnapshot",
    "RecommendationRequest",
    "RecommendationsResponse",
    "UserCreate",
    "UserResponse",
]
