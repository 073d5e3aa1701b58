"""
Banking provider payload schemas.

Field aliases follow the provider's camelCase JSON so raw responses can be
validated directly with ``model_validate``.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from decimal import Decimal

from billsync.schemas.money import Money


class _ProviderModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MerchantEnrichment(_ProviderModel):
    business_name: Optional[str] = Field(None, alias="businessName")


class AnzsicDivision(_ProviderModel):
    title: Optional[str] = None


class Anzsic(_ProviderModel):
    division: Optional[AnzsicDivision] = None


class CategoryEnrichment(_ProviderModel):
    anzsic: Optional[Anzsic] = None


class Enrichment(_ProviderModel):
    merchant: Optional[MerchantEnrichment] = None
    category: Optional[CategoryEnrichment] = None


class BasiqTransaction(_ProviderModel):
    """Raw transaction as returned by the provider."""
    id: str
    status: Optional[str] = None
    description: Optional[str] = None
    amount: str  # Signed decimal string, debits are negative
    account: Optional[str] = None
    balance: Optional[str] = None
    direction: Optional[str] = None  # "credit" | "debit"
    transaction_class: Optional[str] = Field(None, alias="class")
    institution: Optional[str] = None
    post_date: str = Field(alias="postDate")
    transaction_date: Optional[str] = Field(None, alias="transactionDate")
    enrich: Optional[Enrichment] = None


class BasiqAccount(BaseModel):
    """Account with its current balance."""
    id: str
    name: Optional[str] = None
    account_no: Optional[str] = None
    balance: Money = Decimal("0")
    available_balance: Money = Decimal("0")
    type: str = "unknown"
    status: Optional[str] = None
    institution: Optional[str] = None


class AccountsResponse(BaseModel):
    accounts: List[BasiqAccount]
    total_balance: Money
