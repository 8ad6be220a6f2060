"""
Domain error taxonomy.

Quota exhaustion is normally reported as an ``allowed=False`` result;
QuotaExceededError is only raised at the HTTP edge by the quota guard.
"""
from typing import Any, Dict, Optional


class PharmalinkError(Exception):
    """Base class for all domain errors."""

    code = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_detail(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.details}


class ValidationError(PharmalinkError):
    """Rejected input: self swipe, unknown action, missing pairing context."""

    code = "validation_error"


class NotFoundError(PharmalinkError):
    """Referenced user, offer, mission or fee does not exist."""

    code = "not_found"


class QuotaExceededError(PharmalinkError):
    """Subscription quota exhausted for a limit key."""

    code = "quota_exceeded"


class StorageError(PharmalinkError):
    """Persistence failure; the transaction was rolled back."""

    code = "storage_error"
