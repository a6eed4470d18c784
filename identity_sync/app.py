import logging

from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from identity_sync.api import users_bp, admin_bp
from identity_sync.config.settings import Settings
from identity_sync.middleware.error_middleware import ErrorHandler, register_error_handlers
from identity_sync.services import build_services

logger = logging.getLogger(__name__)


def configure_logging(level: str = None):
    logging.basicConfig(
        level=getattr(logging, (level or Settings.LOG_LEVEL), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def default_stores(dev_mode: bool):
    """Firebase-backed stores, or in-memory ones in DEV_MODE."""
    if dev_mode:
        from identity_sync.services.memory_stores import InMemoryIdentityStore, InMemoryDocumentStore
        logger.warning("Running in DEV_MODE - Firebase disabled, using in-memory stores")
        return InMemoryIdentityStore(), InMemoryDocumentStore()

    from identity_sync.config.firebase_config import init_firebase, get_firestore_client
    from identity_sync.services.stores import FirebaseIdentityStore, FirestoreDocumentStore
    app = init_firebase()
    return FirebaseIdentityStore(app=app), FirestoreDocumentStore(get_firestore_client())


def create_app(identity=None, documents=None, dev_mode: bool = None, **options):
    """Create and configure the Flask application.

    Args:
        identity, documents: store implementations to use. When omitted they
            are built from the environment (Firebase, or in-memory in DEV_MODE).
        dev_mode: overrides the DEV_MODE setting.
        options: passed to `build_services` (collection, default_role, ...).
    """
    configure_logging()
    dev_mode = Settings.DEV_MODE if dev_mode is None else dev_mode

    if identity is None or documents is None:
        Settings.validate()
        identity, documents = default_stores(dev_mode)

    app = Flask(__name__)
    app.config['DEV_MODE'] = dev_mode

    CORS(app,
         resources={r"/api/*": {"origins": Settings.CORS_ORIGINS}},
         allow_headers=["Content-Type", "Authorization", "X-User-Id", "X-User-Role"],
         methods=["GET", "POST", "PUT", "OPTIONS"])

    app.extensions["identity_sync"] = build_services(identity, documents, **options)

    @app.get("/")
    def health():
        return jsonify({
            "status": "ok",
            "service": "identity-sync",
            "dev_mode": dev_mode,
        }), 200

    app.before_request(ErrorHandler.log_request_info)
    app.register_blueprint(users_bp)
    app.register_blueprint(admin_bp)
    register_error_handlers(app)

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=Settings.DEBUG)
