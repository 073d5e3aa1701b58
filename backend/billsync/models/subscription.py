"""
Subscription database model.
"""

import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Date, Numeric, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from billsync.database import Base


class Frequency(str, enum.Enum):
    """Billing frequency enumeration."""
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class Subscription(Base):
    """Recurring payment, either detected from transactions or entered by the user."""

    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    merchant_name = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # Per billing cycle
    frequency = Column(Enum(Frequency), nullable=False)
    next_billing_date = Column(Date, nullable=True)
    detected_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)  # Soft delete flag
    auto_detected = Column(Boolean, default=False, nullable=False)

    # Relationships
    user = relationship("User", back_populates="subscriptions")

    __table_args__ = (
        Index("idx_subscription_user_merchant", "user_id", "merchant_name"),
    )
