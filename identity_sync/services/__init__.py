from dataclasses import dataclass

from identity_sync.services.audit_service import SyncAuditor
from identity_sync.services.migration_service import MigrationService
from identity_sync.services.stores import IdentityStore, DocumentStore
from identity_sync.services.sync_service import UserSyncService


@dataclass
class SyncServices:
    sync: UserSyncService
    auditor: SyncAuditor
    migrations: MigrationService


def build_services(identity: IdentityStore, documents: DocumentStore, **options) -> SyncServices:
    """Wire the three services around one pair of stores.

    `options` may carry collection, default_role, create_allowed_roles,
    page_size, max_pages and strict_role_casing; each service takes the
    ones it understands and falls back to Settings for the rest.
    """
    collection = options.get("collection")
    return SyncServices(
        sync=UserSyncService(
            identity,
            documents,
            collection=collection,
            default_role=options.get("default_role"),
            create_allowed_roles=options.get("create_allowed_roles"),
        ),
        auditor=SyncAuditor(
            identity,
            documents,
            collection=collection,
            page_size=options.get("page_size"),
            max_pages=options.get("max_pages"),
            strict_role_casing=options.get("strict_role_casing"),
        ),
        migrations=MigrationService(
            identity,
            documents,
            collection=collection,
            default_role=options.get("default_role"),
            page_size=options.get("page_size"),
            max_pages=options.get("max_pages"),
        ),
    )


__all__ = ["SyncServices", "build_services"]
