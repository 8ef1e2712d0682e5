"""
Error Taxonomy

Failures the storefront distinguishes. Remote-store failures (fetch, seed,
write) are caught where the call is made and turned into notifications; only
AuthFailed and ValidationFailed reach the caller, because the login form and
the checkout form report them inline.

Author: Khalil Bannouri
Version: 4.0.0
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Machine-readable failure categories attached to notifications."""
    AUTH_FAILED = "auth_failed"
    FETCH_FAILED = "fetch_failed"
    SEED_FAILED = "seed_failed"
    WRITE_FAILED = "write_failed"
    VALIDATION_FAILED = "validation_failed"


class BistroError(Exception):
    """Base class for storefront errors."""

    kind: ErrorKind

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class AuthFailed(BistroError):
    """Sign-in or sign-up was rejected."""
    kind = ErrorKind.AUTH_FAILED


class FetchFailed(BistroError):
    """Reading profile, menu or orders from the store failed."""
    kind = ErrorKind.FETCH_FAILED


class SeedFailed(BistroError):
    """Inserting the starter menu for a new account failed."""
    kind = ErrorKind.SEED_FAILED


class WriteFailed(BistroError):
    """A save, update or delete was rejected by the store."""
    kind = ErrorKind.WRITE_FAILED


class ValidationFailed(BistroError):
    """Input was rejected before anything was recorded."""
    kind = ErrorKind.VALIDATION_FAILED
