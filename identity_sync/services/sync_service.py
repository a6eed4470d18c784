"""
User sync service.

Keeps a user identical in the identity store (Firebase Auth) and the
document store (Firestore users collection). Every write goes to the
identity store first and the document store second; when the second write
fails the first one is undone and the document-store error is raised.
There is no lock per uid, so two admins editing the same user at the same
time can still race; the sync audit is how that drift gets detected.
"""
import logging
from typing import Any, Dict, Iterable, Optional

from identity_sync.config.settings import Settings
from identity_sync.exceptions import (
    NotFoundError,
    PrimaryWriteFailure,
    SecondaryWriteFailure,
    StoreReadFailure,
    ValidationError,
)
from identity_sync.models.user_model import Principal, ProfileRecord, UserStatus
from identity_sync.services.saga import Saga
from identity_sync.services.stores import IdentityStore, DocumentStore
from identity_sync.utils.validators import Helpers, normalize_role, parse_role

logger = logging.getLogger(__name__)


class UserSyncService:
    """Create, update, disable and enable users in both stores."""

    def __init__(
        self,
        identity: IdentityStore,
        documents: DocumentStore,
        collection: str = None,
        default_role: Any = None,
        create_allowed_roles: Optional[Iterable[Any]] = None,
    ):
        self.identity = identity
        self.documents = documents
        self.collection = collection or Settings.USERS_COLLECTION
        self.default_role = parse_role(default_role or Settings.DEFAULT_ROLE)
        allowed = create_allowed_roles if create_allowed_roles is not None else Settings.CREATE_ALLOWED_ROLES
        self.create_allowed_roles = [parse_role(r) for r in allowed]

    # ========== OPERATIONS ==========

    def create_user(self, email: str, password: str, name: str, role: Any) -> ProfileRecord:
        """Create the principal, set its role claim, then create the profile record.

        If the profile write fails the new principal is deleted again and the
        SecondaryWriteFailure carrying the document-store message is raised.
        """
        normalized = parse_role(role, self.create_allowed_roles)
        saga = Saga("create_user")

        def create_principal(results):
            uid = self.identity.create_principal(email, password, name, disabled=False)
            saga.uid = uid
            return uid

        def delete_principal(results):
            self.identity.delete_principal(results["identity.create"])

        def set_claim(results):
            self.identity.set_role_claim(results["identity.create"], normalized.value)

        def create_profile(results):
            uid = results["identity.create"]
            ts = self.documents.server_timestamp()
            self.documents.set_record(self.collection, uid, {
                "uid": uid,
                "email": email,
                "name": name,
                "role": normalized.value,
                "status": UserStatus.ACTIVE.value,
                "createdAt": ts,
                "updatedAt": ts,
            })
            now = Helpers.get_current_timestamp()
            return ProfileRecord(
                uid=uid,
                email=email,
                name=name,
                role=normalized.value,
                status=UserStatus.ACTIVE.value,
                created_at=now,
                updated_at=now,
            )

        saga.step("identity.create", create_principal, delete_principal, PrimaryWriteFailure)
        saga.step("identity.role_claim", set_claim, error_class=PrimaryWriteFailure)
        saga.step("document.create", create_profile, error_class=SecondaryWriteFailure)
        profile = saga.run()["document.create"]

        logger.info(f"Created user {profile.uid} ({email}) with role {normalized.value}")
        return profile

    def update_user(self, uid: str, name: Optional[str] = None, role: Any = None) -> ProfileRecord:
        """Change the display name and/or role in both stores.

        A missing profile record is recreated from the identity-store view.
        On document-store failure the previous name and role claim are restored.
        """
        if name is None and role is None:
            raise ValidationError("At least one of name or role is required")
        if name is not None and not name.strip():
            raise ValidationError("Name must not be empty")
        normalized = parse_role(role) if role is not None else None

        principal = self._require_principal(uid)
        previous_name = principal.display_name
        previous_claim = principal.role_claim

        changes = {}
        if name is not None:
            changes["name"] = name
        if normalized is not None:
            changes["role"] = normalized.value

        saga = Saga("update_user", uid)
        if name is not None:
            saga.step(
                "identity.display_name",
                lambda r: self.identity.update_principal(uid, display_name=name),
                lambda r: self.identity.update_principal(uid, display_name=previous_name),
                PrimaryWriteFailure,
            )
        if normalized is not None:
            saga.step(
                "identity.role_claim",
                lambda r: self.identity.set_role_claim(uid, normalized.value),
                lambda r: self.identity.set_role_claim(uid, previous_claim),
                PrimaryWriteFailure,
            )
        saga.step(
            "document.profile",
            lambda r: self._write_profile(principal, changes),
            error_class=SecondaryWriteFailure,
        )
        profile = saga.run()["document.profile"]

        logger.info(f"Updated user {uid}: {', '.join(sorted(changes))}")
        return profile

    def disable_user(self, uid: str) -> ProfileRecord:
        return self._set_disabled(uid, True)

    def enable_user(self, uid: str) -> ProfileRecord:
        return self._set_disabled(uid, False)

    # ========== HELPERS ==========

    def _set_disabled(self, uid, disabled):
        principal = self._require_principal(uid)
        previous = principal.disabled
        status = UserStatus.from_disabled(disabled)
        operation = "disable_user" if disabled else "enable_user"

        saga = Saga(operation, uid)
        saga.step(
            "identity.disabled",
            lambda r: self.identity.update_principal(uid, disabled=disabled),
            lambda r: self.identity.update_principal(uid, disabled=previous),
            PrimaryWriteFailure,
        )
        saga.step(
            "document.status",
            lambda r: self._write_profile(principal, {"status": status.value}),
            error_class=SecondaryWriteFailure,
        )
        profile = saga.run()["document.status"]

        logger.info(f"User {uid} is now {status.value}")
        return profile

    def _require_principal(self, uid) -> Principal:
        try:
            principal = self.identity.get_principal(uid)
        except Exception as exc:
            raise StoreReadFailure(exc, step="identity.get") from exc
        if principal is None:
            raise NotFoundError(uid)
        return principal

    def _write_profile(self, principal: Principal, changes: Dict[str, Any]) -> ProfileRecord:
        """Update the supplied fields, or create the whole record if it is missing.

        Recreating a record also writes back a missing or non-canonical role claim.
        """
        ts = self.documents.server_timestamp()
        record = self.documents.get_record(self.collection, principal.id)

        if record is not None:
            fields = dict(changes)
            fields["updatedAt"] = ts
            self.documents.update_record(self.collection, principal.id, fields)
            merged = dict(record)
            merged.update(changes)
            merged["updatedAt"] = Helpers.get_current_timestamp()
            return ProfileRecord.from_dict(principal.id, merged)

        healed = self.healed_record(principal, **changes)
        logger.warning(f"Profile record for {principal.id} was missing; recreating it from the identity store")
        if "role" not in changes and principal.role_claim != healed.role:
            self.identity.set_role_claim(principal.id, healed.role)
            logger.info(f"Normalized role claim for {principal.id}: {principal.role_claim} -> {healed.role}")
        fields = healed.to_document()
        fields["createdAt"] = ts
        fields["updatedAt"] = ts
        self.documents.set_record(self.collection, principal.id, fields)
        now = Helpers.get_current_timestamp()
        healed.created_at = now
        healed.updated_at = now
        return healed

    def healed_record(self, principal: Principal, name=None, role=None, status=None) -> ProfileRecord:
        """Profile record derived from a principal, with optional overrides."""
        resolved_role = normalize_role(role) or normalize_role(principal.role_claim) or self.default_role
        return ProfileRecord(
            uid=principal.id,
            email=principal.email or "",
            name=name if name is not None else (principal.display_name or ""),
            role=resolved_role.value,
            status=status or UserStatus.from_disabled(principal.disabled).value,
        )
