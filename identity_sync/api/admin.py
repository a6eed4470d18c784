"""
Admin endpoints for keeping Firebase Auth and Firestore in sync:
audit, single-user check, backfill migration and role remapping.
"""
from flask import request, jsonify

from . import admin_bp, get_services
from identity_sync.middleware.auth_middleware import require_admin
from identity_sync.middleware.error_middleware import ErrorHandler
from identity_sync.utils.validators import Helpers


@admin_bp.get("/sync/audit")
@require_admin
def audit_sync():
    """
    Compare both stores and report users missing on either side and
    field-level mismatches. Read-only.
    """
    report = get_services().auditor.audit_sync()
    return jsonify(Helpers.build_success_response(report.to_dict())), 200


@admin_bp.get("/sync/check/<uid>")
@require_admin
def check_user_sync(uid):
    result = get_services().auditor.check_user(uid)
    return jsonify(Helpers.build_success_response(result)), 200


@admin_bp.post("/sync/migrate")
@require_admin
def migrate_to_document_store():
    """Backfill missing profile records. Safe to run repeatedly."""
    result = get_services().migrations.migrate_to_document_store()
    message = "Migration completed" if not result.errors else "Migration completed with errors"
    return jsonify(Helpers.build_success_response(result.to_dict(), message)), 200


@admin_bp.post("/roles/remap")
@require_admin
def remap_role():
    """
    Move every user from one role to another.
    Body: {"source": "WAITER", "target": "KITCHEN"}
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return ErrorHandler.handle_validation_error("Request body must be a JSON object")
    source = payload.get("source")
    target = payload.get("target")
    if not source or not target:
        return ErrorHandler.handle_validation_error("source and target are required")

    result = get_services().migrations.remap_role(source, target)
    return jsonify(Helpers.build_success_response(result.to_dict())), 200
