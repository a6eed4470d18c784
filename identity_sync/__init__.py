"""Keeps users in sync between Firebase Auth and the Firestore users collection."""
from identity_sync.exceptions import (
    SyncError,
    ValidationError,
    InvalidRoleError,
    NotFoundError,
    StoreReadFailure,
    PrimaryWriteFailure,
    SecondaryWriteFailure,
    CompensationFailure,
)
from identity_sync.models.user_model import Role, UserStatus, Principal, ProfileRecord, AuditReport
from identity_sync.services import SyncServices, build_services
from identity_sync.utils.validators import normalize_role, parse_role

__version__ = "1.0.0"

__all__ = [
    "SyncError",
    "ValidationError",
    "InvalidRoleError",
    "NotFoundError",
    "StoreReadFailure",
    "PrimaryWriteFailure",
    "SecondaryWriteFailure",
    "CompensationFailure",
    "Role",
    "UserStatus",
    "Principal",
    "ProfileRecord",
    "AuditReport",
    "SyncServices",
    "build_services",
    "normalize_role",
    "parse_role",
]
