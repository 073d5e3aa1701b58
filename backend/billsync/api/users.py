"""
User API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from billsync.dependencies import get_db
from billsync.schemas.user import UserCreate, UserResponse
from billsync.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
def register_user(
    data: UserCreate,
    db: Session = Depends(get_db)
):
    """Map a banking provider user to a local user. Registering twice returns the same user."""
    return user_service.get_or_create_user(db, data.basiq_user_id, data.email)


@router.get("/{basiq_user_id}", response_model=UserResponse)
def get_user(
    basiq_user_id: str,
    db: Session = Depends(get_db)
):
    user = user_service.get_user_by_external_id(db, basiq_user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
