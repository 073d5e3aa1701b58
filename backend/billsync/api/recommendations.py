"""
Recommendation API endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from billsync.dependencies import get_db
from billsync.schemas.recommendation import RecommendationRequest, RecommendationsResponse
from billsync.services import insights_service

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.get("", response_model=RecommendationsResponse)
def get_recommendations(
    user_id: str = Query(...),
    db: Session = Depends(get_db)
):
    """Cached recommendations, or an empty response when none are current."""
    cached = insights_service.get_cached_recommendations(db, user_id)
    if not cached:
        return RecommendationsResponse()
    return insights_service.to_response(cached, cached=True)


@router.post("", response_model=RecommendationsResponse)
async def create_recommendations(
    request: RecommendationRequest,
    db: Session = Depends(get_db)
):
    """Return cached recommendations or generate a fresh set."""
    return await insights_service.get_or_generate_recommendations(db, request.user_id)
