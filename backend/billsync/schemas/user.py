"""
User schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class UserCreate(BaseModel):
    basiq_user_id: str = Field(min_length=1, max_length=64)
    email: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    external_id: str
    email: Optional[str] = None
    created_at: datetime
    last_sync_at: Optional[datetime] = None

    class Config:
        from_attributes = True
