import logging
import os

import firebase_admin
from firebase_admin import credentials, firestore
from google.auth.credentials import AnonymousCredentials

from identity_sync.config.settings import Settings
from identity_sync.firebase_utils import get_firebase_credentials

logger = logging.getLogger(__name__)


class EmulatorCredential(credentials.Base):
    """Anonymous credential for the local emulators, which do not check tokens."""

    def get_credential(self):
        return AnonymousCredentials()


def init_firebase():
    """Initialize the default Firebase app once and return it.

    Emulator mode needs only a project id; cloud mode loads service account
    credentials. Raises ValueError when no credentials can be found.
    """
    if firebase_admin._apps:
        return firebase_admin.get_app()

    if Settings.uses_emulators():
        logger.info("Firebase Emulator Mode Detected")
        if Settings.FIRESTORE_EMULATOR_HOST:
            logger.info(f"Firestore Emulator: {Settings.FIRESTORE_EMULATOR_HOST}")
        if Settings.FIREBASE_AUTH_EMULATOR_HOST:
            logger.info(f"Auth Emulator: {Settings.FIREBASE_AUTH_EMULATOR_HOST}")

        project_id = Settings.FIREBASE_PROJECT_ID or os.getenv("GCLOUD_PROJECT", "demo-no-project")
        os.environ.setdefault("GCLOUD_PROJECT", project_id)
        app = firebase_admin.initialize_app(EmulatorCredential(), {'projectId': project_id})
        logger.info("Firebase initialized for EMULATOR use")
        return app

    cred = credentials.Certificate(get_firebase_credentials())
    options = {'projectId': Settings.FIREBASE_PROJECT_ID} if Settings.FIREBASE_PROJECT_ID else None
    app = firebase_admin.initialize_app(cred, options)
    logger.info(f"Firebase initialized for project: {app.project_id}")
    return app


def get_firestore_client():
    init_firebase()
    return firestore.client()
