from flask import Blueprint, current_app

users_bp = Blueprint("users", __name__, url_prefix="/api/users")
admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def get_services():
    """Services wired into the running app by `create_app`."""
    return current_app.extensions["identity_sync"]


# Import modules so routes attach
from . import users  # noqa
from . import admin  # noqa - sync audit and migration endpoints

__all__ = [
    "users_bp",
    "admin_bp",
    "get_services",
]
