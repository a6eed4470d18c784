"""
One-shot repair migrations.

`migrate_to_document_store` backfills profile records for principals that
have none. `remap_role` moves every user holding one role to another in
both stores. Both keep going when a single user fails and report the
failures in their result, so a re-run only has the remainder to do.
"""
import logging
from typing import Any, Optional

from identity_sync.config.settings import Settings
from identity_sync.exceptions import StoreReadFailure, ValidationError
from identity_sync.models.user_model import MigrationResult, RoleRemapResult, UserStatus
from identity_sync.services.stores import IdentityStore, DocumentStore
from identity_sync.utils.validators import normalize_role, parse_role

logger = logging.getLogger(__name__)


class MigrationService:

    def __init__(
        self,
        identity: IdentityStore,
        documents: DocumentStore,
        collection: str = None,
        default_role: Any = None,
        page_size: int = None,
        max_pages: Optional[int] = None,
    ):
        self.identity = identity
        self.documents = documents
        self.collection = collection or Settings.USERS_COLLECTION
        self.default_role = parse_role(default_role or Settings.DEFAULT_ROLE)
        self.page_size = page_size or Settings.LIST_PAGE_SIZE
        self.max_pages = max_pages or Settings.LIST_MAX_PAGES

    def migrate_to_document_store(self) -> MigrationResult:
        """Create the missing profile records from identity-store data.

        Role claims are normalized on the way; a claim that changes is
        written back to the identity store before the record is created.
        """
        result = MigrationResult()

        for principal in self._principals():
            uid = principal.id
            try:
                if self.documents.get_record(self.collection, uid) is not None:
                    logger.debug(f"Skipping {uid}: profile record already exists")
                    result.skipped += 1
                    continue

                raw_claim = principal.role_claim
                role = normalize_role(raw_claim) or self.default_role
                # a missing claim counts as a change so both stores end up with the default
                if raw_claim != role.value:
                    self.identity.set_role_claim(uid, role.value)
                    logger.info(f"Normalized role claim for {uid}: {raw_claim} -> {role.value}")
                    result.roles_normalized += 1

                ts = self.documents.server_timestamp()
                self.documents.set_record(self.collection, uid, {
                    "uid": uid,
                    "email": principal.email or "",
                    "name": principal.display_name or "",
                    "role": role.value,
                    "status": UserStatus.from_disabled(principal.disabled).value,
                    "createdAt": ts,
                    "updatedAt": ts,
                })
            except Exception as exc:
                logger.error(f"Failed to migrate {uid}: {exc}")
                result.errors.append(f"{uid}: {exc}")
                continue

            result.migrated += 1
            logger.info(f"Migrated {uid} ({principal.email}) as {role.value}")

        logger.info(
            f"Migration finished: {result.migrated} migrated, {result.skipped} skipped, "
            f"{result.roles_normalized} roles normalized, {len(result.errors)} errors"
        )
        return result

    def remap_role(self, source: Any, target: Any) -> RoleRemapResult:
        """Move every user whose role is `source` to `target` in both stores."""
        source_role = parse_role(source)
        target_role = parse_role(target)
        if source_role == target_role:
            raise ValidationError("Source and target roles must differ")

        result = RoleRemapResult(source=source_role.value, target=target_role.value)

        for principal in self._principals():
            result.total_processed += 1
            if normalize_role(principal.role_claim) != source_role:
                result.unchanged += 1
                continue

            try:
                self.identity.set_role_claim(principal.id, target_role.value)
                record = self.documents.get_record(self.collection, principal.id)
                if record is not None and normalize_role(record.get("role")) == source_role:
                    self.documents.update_record(self.collection, principal.id, {
                        "role": target_role.value,
                        "updatedAt": self.documents.server_timestamp(),
                    })
            except Exception as exc:
                logger.error(f"Failed to remap role for {principal.id}: {exc}")
                result.errors.append({"uid": principal.id, "email": principal.email, "error": str(exc)})
                continue

            result.migrated += 1
            logger.info(f"Remapped {principal.id}: {principal.role_claim} -> {target_role.value}")

        return result

    def _principals(self):
        try:
            return list(self.identity.iter_principals(self.page_size, self.max_pages))
        except Exception as exc:
            raise StoreReadFailure(exc, step="identity.list") from exc
