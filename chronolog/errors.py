"""Exception hierarchy for chronolog.

Error handling philosophy:
- AuthError: missing/invalid token or bad password. Surfaced, never retried.
- NotFoundError: a single remote object (e.g. an image) is missing.
- ValidationError: malformed input rejected before any state changes.
- NetworkError: transport failure, timeout or server error. The sync
  orchestrator moves to its error state; local data is left as is.
"""

from typing import Optional


class ChronologError(Exception):
    """Base class for all chronolog errors."""


class AuthError(ChronologError):
    """Authentication failed or is required."""


class NotFoundError(ChronologError):
    """A remote object does not exist."""


class ValidationError(ChronologError, ValueError):
    """Input failed validation."""


class NetworkError(ChronologError):
    """The backend could not be reached or failed to answer."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
