from datetime import datetime

import pytest

from identity_sync.exceptions import (
    InvalidRoleError,
    NotFoundError,
    PrimaryWriteFailure,
    SecondaryWriteFailure,
    StoreReadFailure,
    ValidationError,
)
from identity_sync.services import build_services
from identity_sync.services.sync_service import UserSyncService


def _uid_for(identity, email):
    for principal in identity.principals.values():
        if principal.email == email:
            return principal.id
    return None


class TestCreateUser:

    def test_creates_user_in_both_stores(self, services, identity, record):
        profile = services.sync.create_user("a@b.com", "secret1", "A", "ADMIN")

        principal = identity.principals[profile.uid]
        assert principal.email == "a@b.com"
        assert principal.display_name == "A"
        assert principal.role_claim == "ADMIN"
        assert principal.disabled is False
        assert identity.passwords[profile.uid] == "secret1"

        stored = record(profile.uid)
        assert stored["uid"] == profile.uid
        assert stored["email"] == "a@b.com"
        assert stored["name"] == "A"
        assert stored["role"] == "ADMIN"
        assert stored["status"] == "active"
        assert isinstance(stored["createdAt"], datetime)
        assert isinstance(stored["updatedAt"], datetime)

        assert profile.role == "ADMIN"
        assert profile.status == "active"

    def test_role_is_normalized_before_writing(self, services, identity, record):
        profile = services.sync.create_user("k@b.com", "secret1", "K", "kitchen")

        assert identity.principals[profile.uid].role_claim == "KITCHEN"
        assert record(profile.uid)["role"] == "KITCHEN"

    def test_invalid_role_touches_no_store(self, services, identity, documents):
        with pytest.raises(InvalidRoleError):
            services.sync.create_user("a@b.com", "secret1", "A", "chef")

        assert identity.calls == []
        assert documents.calls == []

    def test_create_allowed_roles_is_configurable(self, identity, documents):
        sync = UserSyncService(identity, documents, collection="users", create_allowed_roles=["ADMIN", "KITCHEN"])

        with pytest.raises(InvalidRoleError) as exc_info:
            sync.create_user("w@b.com", "secret1", "W", "WAITER")

        assert exc_info.value.allowed == ["ADMIN", "KITCHEN"]
        assert identity.principals == {}

    def test_document_failure_rolls_back_principal(self, services, identity, documents):
        documents.fail_on("set_record", RuntimeError("disk full"))

        with pytest.raises(SecondaryWriteFailure) as exc_info:
            services.sync.create_user("a@b.com", "x", "A", "ADMIN")

        assert exc_info.value.message == "disk full"
        assert str(exc_info.value) == "disk full"
        assert _uid_for(identity, "a@b.com") is None
        assert identity.principals == {}
        assert documents.collections["users"] == {}
        assert any(call[0] == "delete_principal" for call in identity.calls)

    def test_failed_rollback_does_not_replace_original_error(self, services, identity, documents):
        documents.fail_on("set_record", RuntimeError("disk full"))
        identity.fail_on("delete_principal", RuntimeError("auth unavailable"))

        with pytest.raises(SecondaryWriteFailure) as exc_info:
            services.sync.create_user("a@b.com", "x", "A", "ADMIN")

        err = exc_info.value
        assert err.message == "disk full"
        assert len(err.compensation_failures) == 1
        assert "auth unavailable" in err.compensation_failures[0].message
        # the orphaned principal is left for the audit to find
        assert _uid_for(identity, "a@b.com") is not None

    def test_identity_failure_is_not_compensated(self, services, identity, documents):
        identity.fail_on("create_principal", RuntimeError("email already exists"))

        with pytest.raises(PrimaryWriteFailure, match="email already exists"):
            services.sync.create_user("a@b.com", "x", "A", "ADMIN")

        assert not any(call[0] == "delete_principal" for call in identity.calls)
        assert documents.calls == []

    def test_role_claim_failure_deletes_new_principal(self, services, identity, documents):
        identity.fail_on("set_role_claim", RuntimeError("claims too large"))

        with pytest.raises(PrimaryWriteFailure, match="claims too large"):
            services.sync.create_user("a@b.com", "x", "A", "ADMIN")

        assert identity.principals == {}
        assert documents.calls == []

    @pytest.mark.parametrize("failing", [None, "set_record"])
    def test_both_stores_or_neither(self, services, identity, documents, failing):
        if failing:
            documents.fail_on(failing, RuntimeError("boom"))

        try:
            services.sync.create_user("a@b.com", "x", "A", "WAITER")
        except SecondaryWriteFailure:
            pass

        uid = _uid_for(identity, "a@b.com")
        in_documents = [u for u, r in documents.collections["users"].items() if r["email"] == "a@b.com"]
        if uid is None:
            assert in_documents == []
        else:
            assert in_documents == [uid]
            assert documents.collections["users"][uid]["role"] == identity.principals[uid].role_claim


class TestUpdateUser:

    def test_updates_name_in_both_stores(self, services, seed, identity, record):
        seed("u1", name="Old", role="KITCHEN")

        profile = services.sync.update_user("u1", name="New")

        assert identity.principals["u1"].display_name == "New"
        assert identity.principals["u1"].role_claim == "KITCHEN"
        assert record("u1")["name"] == "New"
        assert record("u1")["role"] == "KITCHEN"
        assert isinstance(record("u1")["updatedAt"], datetime)
        assert profile.name == "New"

    def test_updates_role_with_normalization(self, services, seed, identity, record):
        seed("u1", role="KITCHEN")

        profile = services.sync.update_user("u1", role="admin")

        assert identity.principals["u1"].role_claim == "ADMIN"
        assert record("u1")["role"] == "ADMIN"
        assert record("u1")["name"] == "User u1"
        assert profile.role == "ADMIN"

    def test_only_supplied_fields_are_written(self, services, seed, documents):
        seed("u1")

        services.sync.update_user("u1", name="New")

        update_calls = [c for c in documents.calls if c[0] == "update_record"]
        assert len(update_calls) == 1
        assert not any(c[0] == "set_record" for c in documents.calls)

    def test_missing_user_raises_not_found(self, services, identity, documents):
        with pytest.raises(NotFoundError) as exc_info:
            services.sync.update_user("ghost", name="X")

        assert exc_info.value.uid == "ghost"
        assert [c[0] for c in identity.calls] == ["get_principal"]
        assert documents.calls == []

    def test_invalid_role_fails_before_any_store_access(self, services, seed, identity, documents):
        seed("u1")

        with pytest.raises(InvalidRoleError):
            services.sync.update_user("u1", role="chef")

        assert identity.calls == []
        assert documents.calls == []

    def test_requires_name_or_role(self, services):
        with pytest.raises(ValidationError):
            services.sync.update_user("u1")

    def test_rejects_blank_name(self, services):
        with pytest.raises(ValidationError):
            services.sync.update_user("u1", name="   ")

    def test_missing_record_is_recreated(self, services, seed, record):
        seed("u1", name="Ana", role="ADMIN", disabled=True, with_record=False)

        services.sync.update_user("u1", role="kitchen")

        stored = record("u1")
        assert stored["uid"] == "u1"
        assert stored["email"] == "u1@example.com"
        assert stored["name"] == "Ana"
        assert stored["role"] == "KITCHEN"
        assert stored["status"] == "inactive"
        assert isinstance(stored["createdAt"], datetime)

    def test_recreated_record_uses_existing_claim_or_default(self, services, identity, record):
        identity.add("u1", email="a@x.com", display_name="A", role_claim="kitchen")
        identity.add("u2", email="b@x.com", display_name="B")

        services.sync.update_user("u1", name="A2")
        services.sync.update_user("u2", name="B2")

        assert record("u1")["role"] == "KITCHEN"
        assert record("u1")["name"] == "A2"
        assert record("u2")["role"] == "WAITER"
        assert record("u2")["status"] == "active"
        assert identity.principals["u1"].role_claim == "KITCHEN"
        assert identity.principals["u2"].role_claim == "WAITER"
        assert services.auditor.check_user("u1")["synced"] is True
        assert services.auditor.check_user("u2")["synced"] is True

    def test_document_failure_restores_previous_values(self, services, seed, identity, documents, record):
        seed("u1", name="Old", role="KITCHEN")
        documents.fail_on("update_record", RuntimeError("quota exceeded"))

        with pytest.raises(SecondaryWriteFailure, match="quota exceeded"):
            services.sync.update_user("u1", name="New", role="ADMIN")

        assert identity.principals["u1"].display_name == "Old"
        assert identity.principals["u1"].role_claim == "KITCHEN"
        assert record("u1")["name"] == "Old"
        assert record("u1")["role"] == "KITCHEN"

    def test_rollback_removes_claim_that_did_not_exist(self, services, identity, documents):
        identity.add("u1", email="a@x.com", display_name="A")
        documents.fail_on("get_record", RuntimeError("unavailable"))

        with pytest.raises(SecondaryWriteFailure):
            services.sync.update_user("u1", role="ADMIN")

        assert identity.principals["u1"].role_claim is None
        assert "role" not in identity.principals["u1"].custom_claims

    def test_role_claim_failure_undoes_name_change(self, services, seed, identity, documents):
        seed("u1", name="Old")
        identity.fail_on("set_role_claim", RuntimeError("claims rejected"))

        with pytest.raises(PrimaryWriteFailure):
            services.sync.update_user("u1", name="New", role="ADMIN")

        assert identity.principals["u1"].display_name == "Old"
        assert documents.calls == []

    def test_identity_read_failure_is_typed(self, services, identity):
        identity.fail_on("get_principal", RuntimeError("network down"))

        with pytest.raises(StoreReadFailure, match="network down"):
            services.sync.update_user("u1", name="X")


class TestDisableEnableUser:

    def test_disable_sets_both_stores(self, services, seed, identity, record):
        seed("u1")

        profile = services.sync.disable_user("u1")

        assert identity.principals["u1"].disabled is True
        assert record("u1")["status"] == "inactive"
        assert profile.status == "inactive"

    def test_round_trip_restores_original_state(self, services, seed, identity, record):
        seed("u1", name="Ana", role="WAITER")
        before_principal = (identity.principals["u1"].display_name, identity.principals["u1"].role_claim)
        before_record = {k: v for k, v in record("u1").items() if k not in ("createdAt", "updatedAt")}

        services.sync.disable_user("u1")
        services.sync.enable_user("u1")

        principal = identity.principals["u1"]
        assert (principal.display_name, principal.role_claim) == before_principal
        assert principal.disabled is False
        after_record = {k: v for k, v in record("u1").items() if k not in ("createdAt", "updatedAt")}
        assert after_record == before_record

    def test_disable_failure_flips_flag_back(self, services, seed, identity, documents, record):
        seed("u1")
        documents.fail_on("update_record", RuntimeError("disk full"))

        with pytest.raises(SecondaryWriteFailure, match="disk full"):
            services.sync.disable_user("u1")

        assert identity.principals["u1"].disabled is False
        assert record("u1")["status"] == "active"

    def test_enable_failure_flips_flag_back(self, services, seed, identity, documents):
        seed("u1", disabled=True)
        documents.fail_on("update_record", RuntimeError("disk full"))

        with pytest.raises(SecondaryWriteFailure):
            services.sync.enable_user("u1")

        assert identity.principals["u1"].disabled is True

    def test_failed_flip_back_keeps_document_error(self, services, seed, identity, documents):
        seed("u1")

        def failing_update(collection, uid, fields):
            identity.fail_on("update_principal", RuntimeError("auth unavailable"))
            raise RuntimeError("disk full")

        documents.update_record = failing_update

        with pytest.raises(SecondaryWriteFailure) as exc_info:
            services.sync.disable_user("u1")

        assert exc_info.value.message == "disk full"
        assert len(exc_info.value.compensation_failures) == 1
        # drift is left for the audit
        assert identity.principals["u1"].disabled is True

    def test_disable_recreates_missing_record_as_inactive(self, services, identity, record):
        identity.add("u1", email="a@x.com", display_name="A", role_claim="kitchen")

        services.sync.disable_user("u1")

        stored = record("u1")
        assert stored["status"] == "inactive"
        assert stored["role"] == "KITCHEN"
        assert stored["name"] == "A"

    def test_enable_recreates_missing_record_as_active(self, services, identity, record):
        identity.add("u1", email="a@x.com", display_name="A", disabled=True)

        services.sync.enable_user("u1")

        assert record("u1")["status"] == "active"
        assert record("u1")["role"] == "WAITER"
        assert identity.principals["u1"].role_claim == "WAITER"
        assert services.auditor.check_user("u1")["synced"] is True

    def test_missing_user_raises_not_found(self, services, documents):
        with pytest.raises(NotFoundError):
            services.sync.disable_user("ghost")
        with pytest.raises(NotFoundError):
            services.sync.enable_user("ghost")
        assert documents.calls == []

    def test_operations_on_different_users_do_not_interfere(self, identity, documents, seed, record):
        seed("u1")
        seed("u2")
        first = build_services(identity, documents, collection="users")
        second = build_services(identity, documents, collection="users")

        first.sync.disable_user("u1")
        second.sync.update_user("u2", name="Other")

        assert record("u1")["status"] == "inactive"
        assert record("u1")["name"] == "User u1"
        assert record("u2")["status"] == "active"
        assert record("u2")["name"] == "Other"
