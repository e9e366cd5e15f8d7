"""Exceptions shared between the portal's API client and the ballot workflow."""
from typing import Optional


class ElectionApiError(Exception):
    """Raised when the remote election API fails or rejects a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500
