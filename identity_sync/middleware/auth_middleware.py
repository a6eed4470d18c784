from functools import wraps
from flask import current_app, request, g
from firebase_admin import auth as firebase_auth

from identity_sync.middleware.error_middleware import ErrorHandler
from identity_sync.models.user_model import Role
from identity_sync.utils.validators import normalize_role


def _bearer_token():
    auth_header = request.headers.get('Authorization', '')
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == 'bearer':
        return parts[1]
    return None


def _current_claims():
    """Decoded caller claims, or None when the caller is not authenticated."""
    if current_app.config.get('DEV_MODE'):
        uid = request.headers.get('X-User-Id')
        if not uid:
            return None
        return {'uid': uid, 'role': request.headers.get('X-User-Role')}

    token = _bearer_token()
    if not token:
        return None
    try:
        return firebase_auth.verify_id_token(token)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.UserDisabledError):
        return None


def require_admin(f):
    """Decorator requiring an authenticated caller whose role claim is ADMIN"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        claims = _current_claims()
        if not claims:
            return ErrorHandler.handle_authentication_error("Token is missing or invalid")

        if normalize_role(claims.get('role')) != Role.ADMIN:
            return ErrorHandler.handle_authorization_error("Admin role required")

        g.current_user = claims
        return f(*args, **kwargs)

    return decorated_function
