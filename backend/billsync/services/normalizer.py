"""
Normalization of raw provider transactions into the canonical shape.

Everything here is pure: no network, no database.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from billsync.models.transaction import TransactionType
from billsync.schemas.banking import BasiqTransaction
from billsync.schemas.transaction import NormalizedTransaction

UNKNOWN_MERCHANT = "Unknown"

# Checked in order, first match wins
CATEGORY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("food-dining", ("food", "restaurant", "cafe")),
    ("transportation", ("transport", "automotive")),
    ("shopping", ("retail", "shopping")),
    ("health", ("health", "medical")),
    ("entertainment", ("entertainment", "recreation")),
    ("bills-utilities", ("utility", "electricity", "gas")),
]


def parse_amount(value: Optional[str]) -> Decimal:
    """Parse the provider's signed decimal string. Blank or garbage parses as zero."""
    if value is None or not str(value).strip():
        return Decimal("0")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal("0")


def parse_provider_date(value: str) -> date:
    """Take the date part of an ISO date or datetime string."""
    return date.fromisoformat(value.strip()[:10])


def classify_transaction_type(
    direction: Optional[str],
    amount: Decimal,
    description: Optional[str]
) -> TransactionType:
    """
    Decide income / transfer / expense for a provider record.

    Credits whose description mentions "transfer" but not "salary" are
    treated as internal transfers; every other credit is income. Debits are
    always expenses, even when the description says "transfer".

    Keyword matching on free text; known to misclassify some descriptions.
    """
    is_credit = (direction or "").lower() == "credit" or amount > 0
    if not is_credit:
        return TransactionType.expense

    desc_lower = (description or "").lower()
    if "transfer" in desc_lower and "salary" not in desc_lower:
        return TransactionType.transfer
    return TransactionType.income


def map_category(classification_title: Optional[str], txn_type: TransactionType) -> str:
    """Map the provider's ANZSIC division title onto a coarse category."""
    if txn_type == TransactionType.income:
        return "income"
    if txn_type == TransactionType.transfer:
        return "transfer"

    title = (classification_title or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in title for keyword in keywords):
            return category
    return "other"


def resolve_merchant_name(raw: BasiqTransaction) -> str:
    """Enriched business name, else description, else a literal placeholder."""
    if raw.enrich and raw.enrich.merchant and raw.enrich.merchant.business_name:
        return raw.enrich.merchant.business_name
    if raw.description:
        return raw.description
    return UNKNOWN_MERCHANT


def _classification_title(raw: BasiqTransaction) -> Optional[str]:
    enrich = raw.enrich
    if enrich and enrich.category and enrich.category.anzsic and enrich.category.anzsic.division:
        return enrich.category.anzsic.division.title
    return None


def normalize_transaction(raw: BasiqTransaction, user_id: Optional[str] = None) -> NormalizedTransaction:
    """Map a provider record onto the canonical transaction shape."""
    signed_amount = parse_amount(raw.amount)
    txn_type = classify_transaction_type(raw.direction, signed_amount, raw.description)

    return NormalizedTransaction(
        external_id=raw.id,
        user_id=user_id,
        merchant_name=resolve_merchant_name(raw),
        amount=abs(signed_amount),
        type=txn_type,
        category=map_category(_classification_title(raw), txn_type),
        transaction_date=parse_provider_date(raw.transaction_date or raw.post_date),
        description=raw.description,
    )


def normalize_transactions(
    raw_transactions: List[BasiqTransaction],
    user_id: Optional[str] = None
) -> List[NormalizedTransaction]:
    return [normalize_transaction(raw, user_id) for raw in raw_transactions]
