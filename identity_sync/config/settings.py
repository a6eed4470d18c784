import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _split(value: str):
    return [item.strip() for item in value.split(',') if item.strip()]


class Settings:
    # Flask settings
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = FLASK_ENV == 'development'
    DEV_MODE = os.getenv('DEV_MODE', 'false').lower() == 'true'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # CORS settings
    CORS_ORIGINS = _split(os.getenv('CORS_ORIGINS', '*'))

    # Firebase settings
    FIREBASE_PROJECT_ID = os.getenv('FIREBASE_PROJECT_ID')
    FIRESTORE_EMULATOR_HOST = os.getenv('FIRESTORE_EMULATOR_HOST')
    FIREBASE_AUTH_EMULATOR_HOST = os.getenv('FIREBASE_AUTH_EMULATOR_HOST')

    # Sync settings
    USERS_COLLECTION = os.getenv('USERS_COLLECTION', 'users')
    LIST_PAGE_SIZE = int(os.getenv('LIST_PAGE_SIZE', 1000))
    LIST_MAX_PAGES = int(os.getenv('LIST_MAX_PAGES', 1))
    DEFAULT_ROLE = os.getenv('DEFAULT_ROLE', 'WAITER').upper()
    CREATE_ALLOWED_ROLES = [r.upper() for r in _split(os.getenv('CREATE_ALLOWED_ROLES', 'ADMIN,KITCHEN,WAITER'))]
    AUDIT_STRICT_ROLE_CASING = os.getenv('AUDIT_STRICT_ROLE_CASING', 'true').lower() == 'true'

    @classmethod
    def uses_emulators(cls) -> bool:
        return bool(cls.FIRESTORE_EMULATOR_HOST or cls.FIREBASE_AUTH_EMULATOR_HOST)

    @classmethod
    def validate(cls):
        """Validate required settings"""
        from identity_sync.utils.validators import VALID_ROLES

        errors = []
        if not cls.DEV_MODE and not cls.uses_emulators() and not cls.FIREBASE_PROJECT_ID:
            errors.append("Missing required environment variables: FIREBASE_PROJECT_ID")

        if cls.DEFAULT_ROLE not in VALID_ROLES:
            errors.append(f"DEFAULT_ROLE must be one of {', '.join(VALID_ROLES)}")

        unknown = [r for r in cls.CREATE_ALLOWED_ROLES if r not in VALID_ROLES]
        if unknown or not cls.CREATE_ALLOWED_ROLES:
            errors.append(f"CREATE_ALLOWED_ROLES must be a non-empty subset of {', '.join(VALID_ROLES)}")

        if cls.LIST_PAGE_SIZE < 1 or cls.LIST_PAGE_SIZE > 1000:
            errors.append("LIST_PAGE_SIZE must be between 1 and 1000")

        if cls.LIST_MAX_PAGES < 1:
            errors.append("LIST_MAX_PAGES must be at least 1")

        if errors:
            raise ValueError("; ".join(errors))

        return True
