"""
Main API router.
"""

from fastapi import APIRouter
from billsync.api import banking, recommendations, subscriptions, sync, users

api_router = APIRouter()

api_router.include_router(sync.router)
api_router.include_router(users.router)
api_router.include_router(subscriptions.router)
api_router.include_router(banking.router)
api_router.include_router(recommendations.router)
