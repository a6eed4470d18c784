"""Shared pytest configuration for unit tests."""
import pytest

from identity_sync.app import create_app
from identity_sync.services import build_services
from identity_sync.services.memory_stores import InMemoryIdentityStore, InMemoryDocumentStore

COLLECTION = "users"


@pytest.fixture
def identity():
    """Fresh in-memory identity store for each test."""
    return InMemoryIdentityStore()


@pytest.fixture
def documents():
    """Fresh in-memory document store for each test."""
    return InMemoryDocumentStore()


@pytest.fixture
def services(identity, documents):
    return build_services(
        identity,
        documents,
        collection=COLLECTION,
        default_role="WAITER",
        create_allowed_roles=["ADMIN", "KITCHEN", "WAITER"],
        page_size=1000,
        max_pages=1,
        strict_role_casing=True,
    )


@pytest.fixture
def seed(identity, documents):
    """Put a user into both stores in a consistent state.

    Usage: seed("u1", role="KITCHEN", disabled=False, with_record=True)
    """
    def _seed(uid, email=None, name=None, role="KITCHEN", disabled=False, with_record=True, record_role=None):
        email = email or f"{uid}@example.com"
        name = name if name is not None else f"User {uid}"
        identity.add(uid, email=email, display_name=name, role_claim=role, disabled=disabled)
        if with_record:
            documents.collections[COLLECTION][uid] = {
                "uid": uid,
                "email": email,
                "name": name,
                "role": record_role if record_role is not None else role,
                "status": "inactive" if disabled else "active",
                "createdAt": None,
                "updatedAt": None,
            }
        return uid
    return _seed


@pytest.fixture
def record(documents):
    """Read a profile record straight from the in-memory document store."""
    def _record(uid):
        return documents.collections[COLLECTION].get(uid)
    return _record


@pytest.fixture
def app(identity, documents):
    """Flask app in DEV_MODE wired to the in-memory stores."""
    app = create_app(
        identity=identity,
        documents=documents,
        dev_mode=True,
        collection=COLLECTION,
        default_role="WAITER",
        create_allowed_roles=["ADMIN", "KITCHEN", "WAITER"],
        page_size=1000,
        max_pages=1,
        strict_role_casing=True,
    )
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {"X-User-Id": "admin-1", "X-User-Role": "ADMIN"}
