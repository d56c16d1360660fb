"""Custom exception hierarchy for shipquote.

Exception Hierarchy:
    ShipQuoteError (base)
    ├── ProviderError
    │   ├── ProviderTimeoutError
    │   └── ProviderResponseError
    └── PersistenceError

Provider paths catch these locally and turn them into an empty
``ProviderResult``; only malformed input or an unexpected failure reaches
the transport layer.
"""
from __future__ import annotations

from typing import Optional, Dict, Any


class ShipQuoteError(Exception):
    """Base exception for all shipquote errors.

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ProviderError(ShipQuoteError):
    """Base class for rate provider and lookup failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.provider = provider
        details = details or {}
        if provider:
            details["provider"] = provider
        super().__init__(message, code, details)


class ProviderTimeoutError(ProviderError):
    """Raised when a provider request times out."""
    pass


class ProviderResponseError(ProviderError):
    """Raised on a non-2xx status or a body that is not valid JSON.

    Attributes:
        status_code: HTTP status, when the failure came from one
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        details = details or {}
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, provider, code, details)


class PersistenceError(ShipQuoteError):
    """Raised when the quote store cannot be written."""
    pass


def is_retryable_error(error: Exception) -> bool:
    """Check if an error is temporary and the call can be retried."""
    if isinstance(error, ProviderTimeoutError):
        return True
    if isinstance(error, ProviderResponseError) and error.status_code:
        return error.status_code == 429 or error.status_code >= 500
    return False

