"""
Read-through endpoints for the banking provider.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from billsync.banking.client import BasiqClient
from billsync.dependencies import get_banking_client
from billsync.exceptions import ProviderUnavailable
from billsync.schemas.banking import AccountsResponse
from billsync.schemas.transaction import TransactionListResponse, TransactionResponse
from billsync.services.normalizer import normalize_transactions

router = APIRouter(prefix="/banking", tags=["banking"])


def _require_configured(banking_client: BasiqClient) -> None:
    if not banking_client.is_configured:
        raise HTTPException(status_code=503, detail="Banking provider not configured")


@router.get("/accounts", response_model=AccountsResponse)
async def get_accounts(
    user_id: str = Query(..., description="Banking provider user id"),
    banking_client: BasiqClient = Depends(get_banking_client)
):
    """Accounts and total balance for a provider user."""
    _require_configured(banking_client)
    try:
        accounts = await banking_client.fetch_accounts(user_id)
    except ProviderUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))

    return AccountsResponse(
        accounts=accounts,
        total_balance=sum((a.balance for a in accounts), Decimal("0")),
    )


@router.get("/transactions", response_model=TransactionListResponse)
async def get_transactions(
    user_id: str = Query(..., description="Banking provider user id"),
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    banking_client: BasiqClient = Depends(get_banking_client)
):
    """Normalized provider transactions, defaulting to the last 30 days."""
    _require_configured(banking_client)
    to_date = to_date or date.today()
    from_date = from_date or to_date - timedelta(days=30)
    if from_date > to_date:
        raise HTTPException(status_code=400, detail="from_date must not be after to_date")

    try:
        raw_transactions = await banking_client.fetch_transactions(user_id, from_date, to_date)
    except ProviderUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))

    transactions = [
        TransactionResponse(id=t.external_id, **t.model_dump())
        for t in normalize_transactions(raw_transactions)
    ]
    return TransactionListResponse(
        transactions=transactions,
        count=len(transactions),
        from_date=from_date,
        to_date=to_date,
    )
