"""
Typed errors raised by the sync services.

Every error carries a machine-readable code and the HTTP status the API
layer should answer with. Write failures keep the store exception that
caused them on `.original` and reuse its message verbatim.
"""
from typing import Any, Dict, List, Optional


class SyncError(Exception):
    """Base class for all identity sync errors"""

    code = "SYNC_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(SyncError):
    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidRoleError(ValidationError):
    code = "INVALID_ROLE"

    def __init__(self, value: Any, allowed: List[str]):
        super().__init__(
            f"Invalid role: {value}. Allowed roles: {', '.join(allowed)}",
            details={"role": value, "allowed": list(allowed)},
        )
        self.value = value
        self.allowed = list(allowed)


class NotFoundError(SyncError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, uid: str):
        super().__init__(f"User {uid} not found in identity store", details={"uid": uid})
        self.uid = uid


class StoreError(SyncError):
    """A store call failed. Wraps the original exception."""

    status_code = 502

    def __init__(self, original: BaseException, step: Optional[str] = None):
        super().__init__(str(original), details={"step": step} if step else None)
        self.original = original
        self.step = step
        self.compensation_failures: List["CompensationFailure"] = []


class StoreReadFailure(StoreError):
    code = "STORE_READ_FAILURE"


class PrimaryWriteFailure(StoreError):
    """The identity-store write failed."""
    code = "PRIMARY_WRITE_FAILURE"


class SecondaryWriteFailure(StoreError):
    """The document-store write failed after the identity store was written."""
    code = "SECONDARY_WRITE_FAILURE"


class CompensationFailure(SyncError):
    """Undoing a completed step failed. Logged and attached, never raised to callers."""

    code = "COMPENSATION_FAILURE"

    def __init__(self, step: str, original: BaseException):
        super().__init__(f"Compensation for {step} failed: {original}", details={"step": step})
        self.step = step
        self.original = original
