"""Shared pytest configuration for integration tests against the Firebase emulators.

Start the emulators with `python start_emulators.py` (or
`firebase emulators:start`), then run `pytest tests/integration -m integration`.
Every test here is skipped when the emulator ports are closed.
"""
import os
import socket
import uuid

import pytest

os.environ.setdefault("FIRESTORE_EMULATOR_HOST", "localhost:8080")
os.environ.setdefault("FIREBASE_AUTH_EMULATOR_HOST", "localhost:9099")
os.environ.setdefault("GCLOUD_PROJECT", "demo-identity-sync")

PROJECT_ID = os.environ["GCLOUD_PROJECT"]


def check_emulator(host_port):
    """Check if an emulator is listening on host:port."""
    host, _, port = host_port.partition(":")
    try:
        with socket.create_connection((host, int(port)), timeout=1):
            return True
    except (OSError, ValueError):
        return False


def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests if the emulators are not running."""
    firestore_host = os.environ["FIRESTORE_EMULATOR_HOST"]
    auth_host = os.environ["FIREBASE_AUTH_EMULATOR_HOST"]
    firestore_running = check_emulator(firestore_host)
    auth_running = check_emulator(auth_host)

    if firestore_running and auth_running:
        return

    skip_marker = pytest.mark.skip(
        reason=f"Firebase emulators not running. Start with: firebase emulators:start\n"
               f"  Firestore ({firestore_host}): {'running' if firestore_running else 'not running'}\n"
               f"  Auth ({auth_host}): {'running' if auth_running else 'not running'}"
    )
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(skip_marker)


@pytest.fixture(scope="session")
def firebase_app():
    import firebase_admin
    from identity_sync.config.firebase_config import EmulatorCredential

    app = firebase_admin.initialize_app(EmulatorCredential(), {"projectId": PROJECT_ID}, name="identity-sync-it")
    yield app
    firebase_admin.delete_app(app)


@pytest.fixture
def collection():
    """Per-test collection name so runs never see each other's records."""
    return f"test_users_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def identity(firebase_app):
    from identity_sync.services.stores import FirebaseIdentityStore

    store = FirebaseIdentityStore(app=firebase_app)
    created = []
    original_create = store.create_principal

    def tracking_create(*args, **kwargs):
        uid = original_create(*args, **kwargs)
        created.append(uid)
        return uid

    store.create_principal = tracking_create
    yield store

    for uid in created:
        if store.get_principal(uid) is not None:
            store.delete_principal(uid)


@pytest.fixture
def documents(firebase_app):
    from firebase_admin import firestore
    from identity_sync.services.stores import FirestoreDocumentStore

    return FirestoreDocumentStore(firestore.client(firebase_app))


@pytest.fixture
def services(identity, documents, collection):
    from identity_sync.services import build_services

    return build_services(
        identity,
        documents,
        collection=collection,
        default_role="WAITER",
        create_allowed_roles=["ADMIN", "KITCHEN", "WAITER"],
        page_size=1000,
        max_pages=1,
        strict_role_casing=True,
    )


@pytest.fixture
def unique_email():
    return f"it-{uuid.uuid4().hex[:10]}@example.com"
