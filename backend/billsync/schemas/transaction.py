"""
Transaction schemas.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import date

from billsync.models.transaction import TransactionType
from billsync.schemas.money import Money


class NormalizedTransaction(BaseModel):
    """Canonical transaction produced from a raw provider record."""
    model_config = ConfigDict(frozen=True)

    external_id: str
    user_id: Optional[str] = None
    merchant_name: str
    amount: Money = Field(ge=0)
    type: TransactionType
    category: str
    transaction_date: date
    description: Optional[str] = None


class TransactionResponse(BaseModel):
    id: str
    external_id: str
    user_id: Optional[str] = None
    merchant_name: str
    amount: Money
    type: TransactionType
    category: str
    transaction_date: date
    description: Optional[str] = None

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]
    count: int
    from_date: date
    to_date: date
