"""
Sync audit between the identity store and the document store.

Read-only: both stores are loaded in full (the identity store up to the
configured page bound) and compared by uid. Nothing is repaired here;
`migration_service` and the sync service do the writing.
"""
import logging
from typing import Any, Dict, List, Optional

from identity_sync.config.settings import Settings
from identity_sync.exceptions import StoreReadFailure
from identity_sync.models.user_model import (
    AuditReport,
    Inconsistency,
    MissingUser,
    Principal,
    UserStatus,
)
from identity_sync.services.stores import IdentityStore, DocumentStore
from identity_sync.utils.validators import is_canonical_role, normalize_role

logger = logging.getLogger(__name__)


class SyncAuditor:

    def __init__(
        self,
        identity: IdentityStore,
        documents: DocumentStore,
        collection: str = None,
        page_size: int = None,
        max_pages: Optional[int] = None,
        strict_role_casing: bool = None,
    ):
        self.identity = identity
        self.documents = documents
        self.collection = collection or Settings.USERS_COLLECTION
        self.page_size = page_size or Settings.LIST_PAGE_SIZE
        self.max_pages = max_pages or Settings.LIST_MAX_PAGES
        self.strict_role_casing = (
            Settings.AUDIT_STRICT_ROLE_CASING if strict_role_casing is None else strict_role_casing
        )

    def audit_sync(self) -> AuditReport:
        principals = self._load_principals()
        records = self._load_records()

        report = AuditReport(total_identity=len(principals), total_document=len(records))

        for uid, principal in principals.items():
            if uid not in records:
                report.missing_in_document_store.append(
                    MissingUser(uid=uid, email=principal.email, name=principal.display_name)
                )

        for uid, record in records.items():
            if uid not in principals:
                report.missing_in_identity_store.append(
                    MissingUser(uid=uid, email=record.get("email"), name=record.get("name"))
                )

        for uid, principal in principals.items():
            record = records.get(uid)
            if record is not None:
                report.inconsistencies.extend(self.compare(principal, record))

        summary = report.summary()
        logger.info(
            f"Sync audit: {summary['total_identity']} principals, {summary['total_document']} records, "
            f"{summary['missing_in_document_count']} missing in document store, "
            f"{summary['missing_in_identity_count']} missing in identity store, "
            f"{summary['inconsistency_count']} inconsistencies"
        )
        if not report.is_consistent:
            logger.warning("Identity store and document store are out of sync")
        return report

    def check_user(self, uid: str) -> Dict[str, Any]:
        """Presence and field differences for a single uid."""
        try:
            principal = self.identity.get_principal(uid)
            record = self.documents.get_record(self.collection, uid)
        except Exception as exc:
            raise StoreReadFailure(exc, step="check_user") from exc

        inconsistencies = []
        if principal is not None and record is not None:
            inconsistencies = [i.to_dict() for i in self.compare(principal, record)]

        return {
            "uid": uid,
            "in_identity_store": principal is not None,
            "in_document_store": record is not None,
            "inconsistencies": inconsistencies,
            "synced": principal is not None and record is not None and not inconsistencies,
        }

    def compare(self, principal: Principal, record: Dict[str, Any]) -> List[Inconsistency]:
        """Field-level differences for a uid present in both stores.

        Reported values are the raw stored ones.
        """
        uid = principal.id
        found = []

        # an unset display name and an empty name are the same value
        if (principal.display_name or "") != (record.get("name") or ""):
            found.append(Inconsistency(uid, "name", principal.display_name, record.get("name")))

        claim = principal.role_claim
        role = record.get("role")
        # a missing or unknown role is a role problem, not a casing one
        claim_role = normalize_role(claim)
        if claim_role is None or claim_role != normalize_role(role):
            found.append(Inconsistency(uid, "role", claim, role))
        elif self.strict_role_casing and not (is_canonical_role(claim) and is_canonical_role(role)):
            found.append(Inconsistency(uid, "role_format", claim, role))

        if bool(principal.disabled) != (record.get("status") == UserStatus.INACTIVE.value):
            found.append(Inconsistency(uid, "status", principal.disabled, record.get("status")))

        return found

    def _load_principals(self) -> Dict[str, Principal]:
        try:
            return {p.id: p for p in self.identity.iter_principals(self.page_size, self.max_pages)}
        except Exception as exc:
            raise StoreReadFailure(exc, step="identity.list") from exc

    def _load_records(self) -> Dict[str, Dict[str, Any]]:
        try:
            return dict(self.documents.scan_all(self.collection))
        except Exception as exc:
            raise StoreReadFailure(exc, step="document.scan") from exc
