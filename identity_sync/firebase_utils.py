"""Service account lookup for the cloud (non-emulator) Firebase app."""
import json
import os
from typing import Any, Callable, Dict, List, Optional

PATH_VARS = ('FIREBASE_CREDENTIALS_PATH', 'FIREBASE_SERVICE_ACCOUNT_PATH', 'GOOGLE_APPLICATION_CREDENTIALS')
REQUIRED_KEY_VARS = ('FIREBASE_PROJECT_ID', 'FIREBASE_PRIVATE_KEY', 'FIREBASE_CLIENT_EMAIL')


def _read_json_file(path: Optional[str]) -> Optional[Dict[str, Any]]:
    if not path or not os.path.isfile(path):
        return None
    with open(path, 'r') as f:
        return json.load(f)


def _from_inline_json() -> Optional[Dict[str, Any]]:
    # FIREBASE_CREDENTIALS_JSON holds either the JSON itself or a path to it
    raw = os.getenv('FIREBASE_CREDENTIALS_JSON')
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return _read_json_file(raw)


def _from_path_vars() -> Optional[Dict[str, Any]]:
    for var in PATH_VARS:
        creds = _read_json_file(os.getenv(var))
        if creds is not None:
            return creds
    return None


def _from_key_vars() -> Optional[Dict[str, Any]]:
    if not all(os.getenv(var) for var in REQUIRED_KEY_VARS):
        return None
    project_id = os.environ['FIREBASE_PROJECT_ID']
    return {
        "type": "service_account",
        "project_id": project_id,
        "private_key_id": os.getenv('FIREBASE_PRIVATE_KEY_ID'),
        # .env files carry the key with escaped newlines
        "private_key": os.environ['FIREBASE_PRIVATE_KEY'].replace('\\n', '\n'),
        "client_email": os.environ['FIREBASE_CLIENT_EMAIL'],
        "client_id": os.getenv('FIREBASE_CLIENT_ID'),
        "token_uri": "https://oauth2.googleapis.com/token",
    }


CREDENTIAL_SOURCES: List[Callable[[], Optional[Dict[str, Any]]]] = [
    _from_inline_json,
    _from_path_vars,
    _from_key_vars,
]


def get_firebase_credentials() -> Dict[str, Any]:
    """Return the first service account found in CREDENTIAL_SOURCES order.

    Raises:
        ValueError: If no source yields credentials
    """
    for source in CREDENTIAL_SOURCES:
        creds = source()
        if creds is not None:
            return creds

    raise ValueError(
        "Firebase credentials not found. Set FIREBASE_CREDENTIALS_JSON, one of "
        f"{', '.join(PATH_VARS)}, or all of {', '.join(REQUIRED_KEY_VARS)}"
    )
