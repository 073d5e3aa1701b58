"""Banking provider integration."""

from billsync.banking.client import BasiqClient, get_banking_client

__all__ = ["BasiqClient", "get_banking_client"]
