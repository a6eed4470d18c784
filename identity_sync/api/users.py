"""
User management endpoints.
Each handler validates the request body and runs one sync operation; typed
errors are turned into responses by the registered error handlers.
"""
from flask import request, jsonify, g

from . import users_bp, get_services
from identity_sync.middleware.auth_middleware import require_admin
from identity_sync.middleware.error_middleware import ErrorHandler
from identity_sync.utils.validators import Validators, Helpers

BODY_NOT_OBJECT = "Request body must be a JSON object"


def _json_body():
    """Parsed JSON object body; {} when empty, None when it is not an object."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    return payload if isinstance(payload, dict) else None


@users_bp.post("")
@require_admin
def create_user():
    payload = _json_body()
    if payload is None:
        return ErrorHandler.handle_validation_error(BODY_NOT_OBJECT)
    email = Helpers.sanitize_string(payload.get("email")).lower()
    password = payload.get("password") or ""
    name = Helpers.sanitize_string(payload.get("name"))
    role = payload.get("role")

    errors = []
    if not Validators.validate_email(email):
        errors.append("Invalid email format")
    if not Validators.validate_password(password):
        errors.append(f"Password must be at least {Validators.MIN_PASSWORD_LENGTH} characters")
    if not Validators.validate_name(name):
        errors.append("Name is required")
    if not role:
        errors.append("Role is required")
    if errors:
        return ErrorHandler.handle_validation_error({"errors": errors})

    profile = get_services().sync.create_user(email, password, name, role)
    return jsonify(Helpers.build_success_response(profile.to_dict(), "User created")), 201


@users_bp.put("/<uid>")
@require_admin
def update_user(uid):
    payload = _json_body()
    if payload is None:
        return ErrorHandler.handle_validation_error(BODY_NOT_OBJECT)
    name = payload.get("name")
    role = payload.get("role")

    if name is None and role is None:
        return ErrorHandler.handle_validation_error("name or role is required")
    if name is not None:
        name = Helpers.sanitize_string(name)
        if not Validators.validate_name(name):
            return ErrorHandler.handle_validation_error("Invalid name")

    profile = get_services().sync.update_user(uid, name=name, role=role)
    return jsonify(Helpers.build_success_response(profile.to_dict(), "User updated")), 200


@users_bp.post("/<uid>/disable")
@require_admin
def disable_user(uid):
    if g.current_user.get("uid") == uid:
        return ErrorHandler.handle_authorization_error("You cannot disable your own account")

    profile = get_services().sync.disable_user(uid)
    return jsonify(Helpers.build_success_response(profile.to_dict(), "User disabled")), 200


@users_bp.post("/<uid>/enable")
@require_admin
def enable_user(uid):
    profile = get_services().sync.enable_user(uid)
    return jsonify(Helpers.build_success_response(profile.to_dict(), "User enabled")), 200
