"""API endpoints for subscription management."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from billsync.dependencies import get_db
from billsync.models.user import User
from billsync.schemas.subscription import (
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionListResponse,
)
from billsync.services import subscription_service
from billsync.services.subscription_detector import calculate_monthly_cost

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("", response_model=SubscriptionListResponse)
def list_subscriptions(
    user_id: str = Query(...),
    db: Session = Depends(get_db)
):
    """Active subscriptions for a user, most expensive first, with their monthly cost."""
    subscriptions = subscription_service.get_active_subscriptions(db, user_id)
    return SubscriptionListResponse(
        items=[SubscriptionResponse.model_validate(s) for s in subscriptions],
        total=len(subscriptions),
        monthly_cost=calculate_monthly_cost(subscriptions),
    )


@router.post("", response_model=SubscriptionResponse, status_code=201)
def create_subscription(
    data: SubscriptionCreate,
    db: Session = Depends(get_db)
):
    """Manually add a subscription."""
    if not db.query(User).filter(User.id == data.user_id).first():
        raise HTTPException(status_code=404, detail="User not found")

    try:
        subscription = subscription_service.create_subscription(db, data)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SubscriptionResponse.model_validate(subscription)


@router.delete("/{subscription_id}")
def remove_subscription(
    subscription_id: str,
    db: Session = Depends(get_db)
):
    """Remove a subscription. The row is kept and marked inactive."""
    if not subscription_service.deactivate_subscription(db, subscription_id):
        raise HTTPException(status_code=404, detail="Subscription not found")
    return {"success": True}
