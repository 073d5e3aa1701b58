"""
Sync API endpoint.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from billsync.banking.client import BasiqClient
from billsync.dependencies import get_db, get_banking_client
from billsync.schemas.sync import SyncRequest, SyncResponse
from billsync.services import sync_service

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("", response_model=SyncResponse)
async def sync(
    request: SyncRequest,
    db: Session = Depends(get_db),
    banking_client: BasiqClient = Depends(get_banking_client)
):
    """
    Fetch the last 90 days from the banking provider, reconcile and detect subscriptions.
    A failed sync is answered with 502 and the same response shape.
    """
    result = await sync_service.sync_user(db, banking_client, request.basiq_user_id)
    if not result.success:
        return JSONResponse(status_code=502, content=result.model_dump(mode="json"))
    return result
