"""
FastAPI dependencies.
"""

from typing import Generator
from sqlalchemy.orm import Session
from billsync.database import SessionLocal
from billsync.banking.client import BasiqClient, get_banking_client as _get_banking_client


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database sessions.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_banking_client() -> BasiqClient:
    """Dependency for the shared banking provider client."""
    return _get_banking_client()
