"""
In-memory store implementations.

Used when the app runs with DEV_MODE=true and by the unit tests. Both
stores support failure injection: `fail_on(method, error)` makes the next
call(s) to `method` raise `error`.
"""
import copy
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from identity_sync.models.user_model import Principal, PrincipalPage
from identity_sync.services.stores import IdentityStore, DocumentStore, ROLE_CLAIM


class _FailureInjection:

    def __init__(self):
        self._failures = {}
        self.calls = []

    def fail_on(self, method: str, error: BaseException, times: Optional[int] = 1):
        """Raise `error` on the next `times` calls to `method` (None = every call)."""
        self._failures[method] = [error, times]

    def _check(self, method, *args):
        self.calls.append((method,) + args)
        entry = self._failures.get(method)
        if not entry:
            return
        error, times = entry
        if times is not None:
            if times <= 1:
                del self._failures[method]
            else:
                entry[1] = times - 1
        raise error


class InMemoryIdentityStore(_FailureInjection, IdentityStore):

    def __init__(self):
        super().__init__()
        self.principals: Dict[str, Principal] = {}
        self.passwords: Dict[str, str] = {}

    def add(self, uid, email=None, display_name=None, role_claim=None, disabled=False, **claims):
        """Seed a principal directly, bypassing failure injection."""
        if role_claim is not None:
            claims[ROLE_CLAIM] = role_claim
        self.principals[uid] = Principal(
            id=uid,
            email=email,
            display_name=display_name,
            role_claim=role_claim,
            disabled=disabled,
            custom_claims=claims,
        )
        return self.principals[uid]

    def create_principal(self, email, password, display_name, disabled=False):
        self._check("create_principal", email)
        if any(p.email == email for p in self.principals.values()):
            raise ValueError(f"The user with the provided email already exists ({email})")
        uid = uuid.uuid4().hex[:28]
        self.add(uid, email=email, display_name=display_name, disabled=disabled)
        self.passwords[uid] = password
        return uid

    def get_principal(self, uid):
        self._check("get_principal", uid)
        principal = self.principals.get(uid)
        return copy.deepcopy(principal) if principal else None

    def update_principal(self, uid, **attrs):
        self._check("update_principal", uid, attrs)
        principal = self._require(uid)
        if "display_name" in attrs:
            principal.display_name = attrs["display_name"]
        if "disabled" in attrs:
            principal.disabled = bool(attrs["disabled"])

    def set_role_claim(self, uid, role):
        self._check("set_role_claim", uid, role)
        principal = self._require(uid)
        if role is None:
            principal.custom_claims.pop(ROLE_CLAIM, None)
            principal.role_claim = None
        else:
            principal.custom_claims[ROLE_CLAIM] = str(role)
            principal.role_claim = str(role)

    def delete_principal(self, uid):
        self._check("delete_principal", uid)
        self._require(uid)
        del self.principals[uid]
        self.passwords.pop(uid, None)

    def list_principals(self, page_size, page_token=None):
        self._check("list_principals", page_size, page_token)
        uids = sorted(self.principals)
        start = int(page_token) if page_token else 0
        chunk = uids[start:start + page_size]
        end = start + len(chunk)
        return PrincipalPage(
            principals=[copy.deepcopy(self.principals[uid]) for uid in chunk],
            next_page_token=str(end) if end < len(uids) else None,
        )

    def _require(self, uid):
        if uid not in self.principals:
            raise LookupError(f"No user record found for the provided user ID: {uid}")
        return self.principals[uid]


class InMemoryDocumentStore(_FailureInjection, DocumentStore):

    def __init__(self):
        super().__init__()
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)

    def get_record(self, collection, uid):
        self._check("get_record", collection, uid)
        record = self.collections[collection].get(uid)
        return copy.deepcopy(record) if record is not None else None

    def set_record(self, collection, uid, fields):
        self._check("set_record", collection, uid)
        self.collections[collection][uid] = self._resolve(fields)

    def update_record(self, collection, uid, fields):
        self._check("update_record", collection, uid)
        if uid not in self.collections[collection]:
            raise LookupError(f"No document to update: {collection}/{uid}")
        self.collections[collection][uid].update(self._resolve(fields))

    def scan_all(self, collection):
        self._check("scan_all", collection)
        for uid, record in list(self.collections[collection].items()):
            yield uid, copy.deepcopy(record)

    def server_timestamp(self):
        return _SERVER_TIMESTAMP

    @staticmethod
    def _resolve(fields):
        now = datetime.now(timezone.utc)
        return {k: (now if v is _SERVER_TIMESTAMP else copy.deepcopy(v)) for k, v in fields.items()}


class _ServerTimestamp:
    def __repr__(self):
        return "SERVER_TIMESTAMP"


_SERVER_TIMESTAMP = _ServerTimestamp()
