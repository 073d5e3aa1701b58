"""
Transaction database model.
"""

import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Date, Numeric, Text, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from billsync.database import Base


class TransactionType(str, enum.Enum):
    """Direction of a transaction. Amounts are always stored unsigned."""
    income = "income"
    expense = "expense"
    transfer = "transfer"


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    external_id = Column(String(64), nullable=False, index=True)  # Idempotency key, unique per user
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    merchant_name = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # Always >= 0, direction lives in type
    type = Column(Enum(TransactionType), nullable=False)
    category = Column(String(50), nullable=False, default="other")
    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="transactions")

    __table_args__ = (
        Index("idx_transaction_user_date", "user_id", "transaction_date"),
        UniqueConstraint("user_id", "external_id", name="uq_transaction_user_external"),
    )
