from datetime import datetime, timezone
from typing import Dict, Any, Optional, Iterable
import re

from identity_sync.exceptions import InvalidRoleError
from identity_sync.models.user_model import Role

VALID_ROLES = tuple(role.value for role in Role)


def normalize_role(value: Any) -> Optional[Role]:
    """Uppercase `value` and return the matching Role, or None if it is not one."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.upper())
    except ValueError:
        return None


def parse_role(value: Any, allowed: Optional[Iterable[Role]] = None) -> Role:
    """Like normalize_role, but raises InvalidRoleError instead of returning None.

    `allowed` narrows the accepted set (defaults to every Role).
    """
    allowed_roles = list(allowed) if allowed is not None else list(Role)
    role = normalize_role(value)
    if role is None or role not in allowed_roles:
        raise InvalidRoleError(value, [r.value for r in allowed_roles])
    return role


def is_canonical_role(value: Any) -> bool:
    """True when `value` is stored exactly in canonical uppercase form."""
    role = normalize_role(value)
    return role is not None and value == role.value


class Validators:
    """Input validation utilities"""

    MIN_PASSWORD_LENGTH = 6

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format"""
        if not email or not isinstance(email, str):
            return False
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return bool(re.match(pattern, email))

    @staticmethod
    def validate_name(name: str) -> bool:
        """Validate display name (1-100 chars after trimming)"""
        if not name or not isinstance(name, str):
            return False
        return 1 <= len(name.strip()) <= 100

    @staticmethod
    def validate_password(password: str) -> bool:
        if not password or not isinstance(password, str):
            return False
        return len(password) >= Validators.MIN_PASSWORD_LENGTH


class Helpers:
    """Utility helper functions"""

    @staticmethod
    def get_current_timestamp() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def format_timestamp(timestamp: datetime) -> str:
        """Format timestamp for API response"""
        return timestamp.isoformat()

    @staticmethod
    def sanitize_string(text: str) -> str:
        """Trimmed text; anything that is not a string becomes an empty string."""
        if not text or not isinstance(text, str):
            return ""
        return text.strip()

    @staticmethod
    def build_error_response(message: str, code: str = "ERROR", details: Any = None) -> Dict[str, Any]:
        """Build standardized error response"""
        response = {
            'success': False,
            'error': message,
            'code': code,
            'timestamp': Helpers.format_timestamp(Helpers.get_current_timestamp())
        }
        if details:
            response['details'] = details
        return response

    @staticmethod
    def build_success_response(data: Any = None, message: str = None) -> Dict[str, Any]:
        """Build standardized success response"""
        response = {
            'success': True,
            'timestamp': Helpers.format_timestamp(Helpers.get_current_timestamp())
        }

        if data is not None:
            response['data'] = data

        if message:
            response['message'] = message

        return response
