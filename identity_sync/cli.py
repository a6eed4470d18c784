#!/usr/bin/env python3
"""
Admin command line for the Firebase Auth / Firestore user sync.

Usage:
    identity-sync audit
    identity-sync migrate
    identity-sync set-role <uid> <role>
    identity-sync remap-role <source> <target>
"""
import json
import sys

from dotenv import load_dotenv

from identity_sync.exceptions import SyncError

USAGE = __doc__.strip()


def _services():
    from identity_sync.app import configure_logging, default_stores
    from identity_sync.config.settings import Settings
    from identity_sync.services import build_services

    configure_logging()
    Settings.validate()
    identity, documents = default_stores(Settings.DEV_MODE)
    return build_services(identity, documents)


def print_header(title):
    print("=" * 60)
    print(title)
    print("=" * 60)


def run_audit(services) -> int:
    print_header("Sync audit: Firebase Auth <-> Firestore")
    report = services.auditor.audit_sync()
    summary = report.summary()

    print(f"Principals in identity store:  {summary['total_identity']}")
    print(f"Records in document store:     {summary['total_document']}")
    print(f"Missing in document store:     {summary['missing_in_document_count']}")
    print(f"Missing in identity store:     {summary['missing_in_identity_count']}")
    print(f"Field inconsistencies:         {summary['inconsistency_count']}")

    for missing in report.missing_in_document_store:
        print(f"  - no profile record: {missing.uid} ({missing.email})")
    for missing in report.missing_in_identity_store:
        print(f"  - no principal:      {missing.uid} ({missing.email})")
    for item in report.inconsistencies:
        print(f"  - {item.uid} {item.field}: identity={item.identity_value!r} document={item.document_value!r}")

    if report.is_consistent:
        print("\n✅ Stores are consistent")
        return 0
    print("\n⚠️  Stores are out of sync")
    return 1


def run_migrate(services) -> int:
    print_header("Backfill: Firebase Auth -> Firestore")
    result = services.migrations.migrate_to_document_store()

    print(f"✅ Migrated:          {result.migrated}")
    print(f"⏭️  Skipped (existing): {result.skipped}")
    print(f"🔄 Roles normalized:  {result.roles_normalized}")
    if result.errors:
        print(f"\n❌ Errors ({len(result.errors)}):")
        for err in result.errors:
            print(f"   - {err}")
        return 1
    return 0


def run_set_role(services, uid, role) -> int:
    profile = services.sync.update_user(uid, role=role)
    print(f"✅ Role for {uid} set to {profile.role}")
    print("The user will need to sign out and sign in again for the change to take effect.")
    return 0


def run_remap_role(services, source, target) -> int:
    print_header(f"Role remap: {source.upper()} -> {target.upper()}")
    result = services.migrations.remap_role(source, target)
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.errors else 0


COMMANDS = {
    "audit": (run_audit, 0),
    "migrate": (run_migrate, 0),
    "set-role": (run_set_role, 2),
    "remap-role": (run_remap_role, 2),
}


def main(argv=None, services=None) -> int:
    load_dotenv()
    args = list(sys.argv[1:] if argv is None else argv)

    if not args or args[0] not in COMMANDS:
        print(USAGE)
        return 2

    handler, arity = COMMANDS[args[0]]
    params = args[1:]
    if len(params) != arity:
        print(USAGE)
        return 2

    try:
        if services is None:
            services = _services()
        return handler(services, *params)
    except SyncError as e:
        print(f"❌ {e.code}: {e.message}")
        return 1
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
