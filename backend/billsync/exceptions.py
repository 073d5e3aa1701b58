"""
Errors raised at the collaborator boundaries of a sync.
"""

from typing import Optional


class ProviderUnavailable(Exception):
    """The banking provider could not be reached or rejected the request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StorageUnavailable(Exception):
    """The persistent store failed while a sync was writing or reading."""
