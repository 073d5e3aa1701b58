"""Service for local user records."""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy.orm import Session

from billsync.models.user import User


def get_user_by_external_id(db: Session, external_id: str) -> Optional[User]:
    return db.query(User).filter(User.external_id == external_id).first()


def get_or_create_user(db: Session, external_id: str, email: Optional[str] = None) -> User:
    """Register a local user for a provider user id. Returns the existing row if present."""
    user = get_user_by_external_id(db, external_id)
    if user:
        return user

    user = User(
        id=str(uuid.uuid4()),
        external_id=external_id,
        email=email,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_last_sync(db: Session, user: User, synced_at: Optional[datetime] = None) -> None:
    user.last_sync_at = synced_at or datetime.utcnow()
    db.commit()
