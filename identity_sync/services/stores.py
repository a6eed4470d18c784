"""
Store capabilities consumed by the sync services.

IdentityStore and DocumentStore describe what the services need from the
two systems of record. The Firebase classes below implement them on top of
firebase_admin (Auth for principals, Firestore for profile records); the
in-memory versions in memory_stores.py implement them for DEV_MODE and tests.
"""
import abc
import logging
from typing import Any, Dict, Iterator, Optional, Tuple

from firebase_admin import auth, firestore

from identity_sync.models.user_model import Principal, PrincipalPage

logger = logging.getLogger(__name__)

ROLE_CLAIM = "role"


class IdentityStore(abc.ABC):
    """Owns authentication, role claims and the enabled/disabled flag."""

    @abc.abstractmethod
    def create_principal(self, email: str, password: str, display_name: str, disabled: bool = False) -> str:
        """Create a principal and return its store-assigned id."""

    @abc.abstractmethod
    def get_principal(self, uid: str) -> Optional[Principal]:
        """Return the principal, or None when it does not exist."""

    @abc.abstractmethod
    def update_principal(self, uid: str, **attrs) -> None:
        """Update `display_name` and/or `disabled`. A display_name of None clears it."""

    @abc.abstractmethod
    def set_role_claim(self, uid: str, role: Optional[str]) -> None:
        """Set the role claim, keeping other custom claims. None removes it."""

    @abc.abstractmethod
    def delete_principal(self, uid: str) -> None:
        pass

    @abc.abstractmethod
    def list_principals(self, page_size: int, page_token: Optional[str] = None) -> PrincipalPage:
        pass

    def iter_principals(self, page_size: int, max_pages: Optional[int] = None) -> Iterator[Principal]:
        """Yield principals page by page, stopping after `max_pages` pages."""
        token = None
        pages = 0
        while True:
            page = self.list_principals(page_size, token)
            pages += 1
            for principal in page.principals:
                yield principal
            token = page.next_page_token
            if not token:
                return
            if max_pages is not None and pages >= max_pages:
                logger.warning(
                    f"Identity store scan stopped after {pages} page(s) of {page_size}; "
                    f"remaining principals are excluded"
                )
                return


class DocumentStore(abc.ABC):
    """Owns the denormalized profile records."""

    @abc.abstractmethod
    def get_record(self, collection: str, uid: str) -> Optional[Dict[str, Any]]:
        pass

    @abc.abstractmethod
    def set_record(self, collection: str, uid: str, fields: Dict[str, Any]) -> None:
        pass

    @abc.abstractmethod
    def update_record(self, collection: str, uid: str, fields: Dict[str, Any]) -> None:
        pass

    @abc.abstractmethod
    def scan_all(self, collection: str) -> Iterator[Tuple[str, Dict[str, Any]]]:
        """Yield (document id, fields) for every record in the collection."""

    @abc.abstractmethod
    def server_timestamp(self) -> Any:
        """Value that makes the store assign the write time."""


def principal_from_user_record(user) -> Principal:
    claims = dict(user.custom_claims or {})
    return Principal(
        id=user.uid,
        email=user.email,
        display_name=user.display_name,
        role_claim=claims.get(ROLE_CLAIM),
        disabled=bool(user.disabled),
        custom_claims=claims,
    )


class FirebaseIdentityStore(IdentityStore):
    """IdentityStore backed by Firebase Authentication."""

    def __init__(self, app=None, auth_client=auth):
        self._app = app
        self._auth = auth_client

    def create_principal(self, email, password, display_name, disabled=False):
        user = self._auth.create_user(
            email=email,
            password=password,
            display_name=display_name,
            email_verified=False,
            disabled=disabled,
            app=self._app,
        )
        return user.uid

    def get_principal(self, uid):
        try:
            user = self._auth.get_user(uid, app=self._app)
        except auth.UserNotFoundError:
            return None
        return principal_from_user_record(user)

    def update_principal(self, uid, **attrs):
        kwargs = {}
        if "display_name" in attrs:
            name = attrs["display_name"]
            kwargs["display_name"] = name if name is not None else auth.DELETE_ATTRIBUTE
        if "disabled" in attrs:
            kwargs["disabled"] = bool(attrs["disabled"])
        if not kwargs:
            return
        self._auth.update_user(uid, app=self._app, **kwargs)

    def set_role_claim(self, uid, role):
        user = self._auth.get_user(uid, app=self._app)
        claims = dict(user.custom_claims or {})
        if role is None:
            claims.pop(ROLE_CLAIM, None)
        else:
            claims[ROLE_CLAIM] = str(role)
        self._auth.set_custom_user_claims(uid, claims or None, app=self._app)

    def delete_principal(self, uid):
        self._auth.delete_user(uid, app=self._app)

    def list_principals(self, page_size, page_token=None):
        page = self._auth.list_users(page_token=page_token, max_results=page_size, app=self._app)
        return PrincipalPage(
            principals=[principal_from_user_record(u) for u in page.users],
            next_page_token=page.next_page_token or None,
        )


class FirestoreDocumentStore(DocumentStore):
    """DocumentStore backed by Cloud Firestore."""

    def __init__(self, db=None):
        self._db = db if db is not None else firestore.client()

    def _doc(self, collection, uid):
        return self._db.collection(collection).document(uid)

    def get_record(self, collection, uid):
        snapshot = self._doc(collection, uid).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def set_record(self, collection, uid, fields):
        self._doc(collection, uid).set(fields)

    def update_record(self, collection, uid, fields):
        self._doc(collection, uid).update(fields)

    def scan_all(self, collection):
        for snapshot in self._db.collection(collection).stream():
            yield snapshot.id, snapshot.to_dict() or {}

    def server_timestamp(self):
        return firestore.SERVER_TIMESTAMP
