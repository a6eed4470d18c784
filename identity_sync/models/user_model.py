"""
User data model shared by both stores.

A Principal is the identity-store (Firebase Auth) view of a user, a
ProfileRecord is the document-store (Firestore) view. The audit and
migration result types live here too so the API layer can serialise them
without reaching into the services.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional, List


class Role(str, Enum):
    """Closed set of platform roles. The value is the canonical uppercase form."""
    ADMIN = "ADMIN"
    KITCHEN = "KITCHEN"
    WAITER = "WAITER"

    def __str__(self):
        return self.value


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

    @classmethod
    def from_disabled(cls, disabled: bool) -> "UserStatus":
        return cls.INACTIVE if disabled else cls.ACTIVE

    def __str__(self):
        return self.value


@dataclass
class Principal:
    """A user as held by the identity store."""
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    role_claim: Optional[str] = None
    disabled: bool = False
    custom_claims: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PrincipalPage:
    principals: List[Principal]
    next_page_token: Optional[str] = None


@dataclass
class ProfileRecord:
    """A user as held by the document store."""
    uid: str
    email: str
    name: str
    role: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, uid: str, data: Dict[str, Any]) -> "ProfileRecord":
        return cls(
            uid=data.get("uid") or uid,
            email=data.get("email", ""),
            name=data.get("name", ""),
            role=data.get("role", ""),
            status=data.get("status", ""),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_document(self) -> Dict[str, Any]:
        """Field layout stored in the users collection."""
        return {
            "uid": self.uid,
            "email": self.email,
            "name": self.name,
            "role": str(self.role),
            "status": str(self.status),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "email": self.email,
            "name": self.name,
            "role": str(self.role),
            "status": str(self.status),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


def _iso(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@dataclass
class MissingUser:
    uid: str
    email: Optional[str]
    name: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"uid": self.uid, "email": self.email, "name": self.name}


@dataclass
class Inconsistency:
    uid: str
    field: str
    identity_value: Any
    document_value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "field": self.field,
            "identity_value": self.identity_value,
            "document_value": self.document_value,
        }


@dataclass
class AuditReport:
    """Result of one reconciliation pass. Built fresh per call, never stored."""
    total_identity: int = 0
    total_document: int = 0
    missing_in_document_store: List[MissingUser] = field(default_factory=list)
    missing_in_identity_store: List[MissingUser] = field(default_factory=list)
    inconsistencies: List[Inconsistency] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (
            self.missing_in_document_store
            or self.missing_in_identity_store
            or self.inconsistencies
        )

    def summary(self) -> Dict[str, Any]:
        return {
            "total_identity": self.total_identity,
            "total_document": self.total_document,
            "missing_in_document_count": len(self.missing_in_document_store),
            "missing_in_identity_count": len(self.missing_in_identity_store),
            "inconsistency_count": len(self.inconsistencies),
            "is_consistent": self.is_consistent,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "missing_in_document_store": [m.to_dict() for m in self.missing_in_document_store],
            "missing_in_identity_store": [m.to_dict() for m in self.missing_in_identity_store],
            "inconsistencies": [i.to_dict() for i in self.inconsistencies],
            "summary": self.summary(),
        }


@dataclass
class MigrationResult:
    migrated: int = 0
    skipped: int = 0
    roles_normalized: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "migrated": self.migrated,
            "skipped": self.skipped,
            "roles_normalized": self.roles_normalized,
            "errors": list(self.errors),
        }


@dataclass
class RoleRemapResult:
    source: str
    target: str
    total_processed: int = 0
    migrated: int = 0
    unchanged: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": str(self.source),
            "target": str(self.target),
            "total_processed": self.total_processed,
            "migrated": self.migrated,
            "unchanged": self.unchanged,
            "errors": list(self.errors),
        }
