"""HTTP client for the Basiq banking data API."""

import asyncio
import logging
import time
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from billsync.config import settings
from billsync.exceptions import ProviderUnavailable
from billsync.schemas.banking import BasiqAccount, BasiqTransaction

logger = logging.getLogger(__name__)

PLACEHOLDER_KEY = "[TO_BE_CONFIGURED]"
PAGE_SIZE = 500


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value or "0"))
    except InvalidOperation:
        return Decimal("0")


class BasiqClient:
    """
    Stateful client for the banking provider.

    Holds a server access token and refreshes it when it expires, or when
    the provider answers 401 for a cached token. All failures surface as
    ``ProviderUnavailable``.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://au-api.basiq.io",
        version: str = "3.0",
        token_ttl_seconds: int = 50 * 60,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._api_key = api_key or ""
        self._base_url = base_url.rstrip("/")
        self._version = version
        self._token_ttl = token_ttl_seconds
        self._timeout = timeout
        self._client = http_client
        self._clock = clock
        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return self._api_key.strip() not in ("", PLACEHOLDER_KEY)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # Token lifecycle
    # -------------------------------------------------------------------------

    def has_valid_token(self) -> bool:
        return self._access_token is not None and self._clock() < self._token_expiry

    def invalidate_token(self) -> None:
        self._access_token = None
        self._token_expiry = 0.0

    async def get_access_token(self) -> str:
        """Return the cached token, requesting a new one when missing or expired."""
        async with self._token_lock:
            if self.has_valid_token():
                return self._access_token

            response = await self._send(
                "POST",
                f"{self._base_url}/token",
                headers={
                    "Authorization": f"Basic {self._api_key}",
                    "Content-Type": "application/x-www-form-urlencoded",
                    "basiq-version": self._version,
                },
                content="scope=SERVER_ACCESS",
            )
            token = self._json(response).get("access_token")
            if not token:
                raise ProviderUnavailable("Token response did not include an access token")

            self._access_token = token
            self._token_expiry = self._clock() + self._token_ttl
            logger.debug("Obtained new banking provider token")
            return token

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._get_client().request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Banking provider returned error %d for %s",
                e.response.status_code,
                url,
            )
            raise ProviderUnavailable(
                f"Banking provider returned {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Banking provider request failed (%s): %s", type(e).__name__, e)
            raise ProviderUnavailable(f"Banking provider unreachable: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderUnavailable("Banking provider returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise ProviderUnavailable("Banking provider returned an unexpected payload")
        return payload

    async def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Authorized GET. A 401 on a cached token triggers one refresh and retry."""
        for attempt in range(2):
            token = await self.get_access_token()
            try:
                response = await self._send(
                    "GET",
                    url,
                    params=params,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "basiq-version": self._version,
                    },
                )
                return self._json(response)
            except ProviderUnavailable as e:
                if e.status_code == 401 and attempt == 0:
                    self.invalidate_token()
                    continue
                raise
        raise ProviderUnavailable("Banking provider rejected refreshed credentials", status_code=401)

    # -------------------------------------------------------------------------
    # Data
    # -------------------------------------------------------------------------

    async def fetch_accounts(self, user_id: str) -> List[BasiqAccount]:
        """Fetch all accounts for a provider user."""
        payload = await self._get(f"{self._base_url}/users/{user_id}/accounts")

        accounts = []
        for account in payload.get("data") or []:
            account_class = account.get("class") or {}
            accounts.append(BasiqAccount(
                id=str(account.get("id")),
                name=account.get("name"),
                account_no=account.get("accountNo"),
                balance=_to_decimal(account.get("balance")),
                available_balance=_to_decimal(account.get("availableFunds")),
                type=account_class.get("type") or "unknown",
                status=account.get("status"),
                institution=account.get("institution"),
            ))
        return accounts

    async def fetch_total_balance(self, user_id: str) -> Decimal:
        """Total balance across all of a user's accounts."""
        accounts = await self.fetch_accounts(user_id)
        return sum((account.balance for account in accounts), Decimal("0"))

    async def fetch_transactions(self, user_id: str, from_date: date, to_date: date) -> List[BasiqTransaction]:
        """Fetch every transaction posted within the date range, following pagination links."""
        url: Optional[str] = f"{self._base_url}/users/{user_id}/transactions"
        params: Optional[Dict[str, Any]] = {
            "filter": f"transaction.postDate.bt('{from_date.isoformat()}','{to_date.isoformat()}')",
            "limit": PAGE_SIZE,
        }

        transactions: List[BasiqTransaction] = []
        while url:
            payload = await self._get(url, params=params)
            try:
                transactions.extend(
                    BasiqTransaction.model_validate(item) for item in payload.get("data") or []
                )
            except ValidationError as e:
                raise ProviderUnavailable(f"Banking provider returned malformed transactions: {e}") from e

            # The next link already carries the filter
            url = (payload.get("links") or {}).get("next")
            params = None

        logger.info("Fetched %d transactions for provider user %s", len(transactions), user_id)
        return transactions


_banking_client: Optional[BasiqClient] = None


def get_banking_client() -> BasiqClient:
    global _banking_client
    if _banking_client is None:
        _banking_client = BasiqClient(
            api_key=settings.basiq_api_key,
            base_url=settings.basiq_api_url,
            version=settings.basiq_version,
            token_ttl_seconds=settings.basiq_token_ttl_seconds,
            timeout=settings.basiq_timeout_seconds,
        )
    return _banking_client
