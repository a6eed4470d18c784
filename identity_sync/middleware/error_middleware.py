"""
Error Handling Middleware
Centralized error handling and logging
"""
import logging
import traceback
from flask import request, jsonify

from identity_sync.exceptions import SyncError, StoreError
from identity_sync.utils.validators import Helpers

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Centralized error handling service"""

    @staticmethod
    def handle_sync_error(error: SyncError) -> tuple:
        """Map a typed sync error to its JSON response"""
        if error.status_code >= 500:
            logger.error(f"{error.code}: {error.message}")
        else:
            logger.warning(f"{error.code}: {error.message}")

        details = dict(error.details)
        if isinstance(error, StoreError) and error.compensation_failures:
            details["compensation_failures"] = [f.message for f in error.compensation_failures]

        return jsonify(Helpers.build_error_response(
            message=error.message,
            code=error.code,
            details=details
        )), error.status_code

    @staticmethod
    def handle_validation_error(error_data) -> tuple:
        """Handle request validation errors"""
        logger.warning(f"Validation error: {error_data}")

        error_message = "Validation failed"
        if isinstance(error_data, dict) and 'errors' in error_data:
            error_message = "; ".join(error_data['errors'])
        elif isinstance(error_data, str):
            error_message = error_data

        return jsonify(Helpers.build_error_response(
            message=error_message,
            code="VALIDATION_ERROR",
            details=error_data if isinstance(error_data, dict) else None
        )), 400

    @staticmethod
    def handle_authentication_error(error_message: str = "Authentication failed") -> tuple:
        logger.warning(f"Authentication error: {error_message}")

        return jsonify(Helpers.build_error_response(
            message=error_message,
            code="AUTHENTICATION_ERROR"
        )), 401

    @staticmethod
    def handle_authorization_error(error_message: str = "Insufficient permissions") -> tuple:
        logger.warning(f"Authorization error: {error_message}")

        return jsonify(Helpers.build_error_response(
            message=error_message,
            code="AUTHORIZATION_ERROR"
        )), 403

    @staticmethod
    def handle_not_found_error(resource: str = "Resource") -> tuple:
        logger.info(f"Not found error: {resource}")

        return jsonify(Helpers.build_error_response(
            message=f"{resource} not found",
            code="NOT_FOUND"
        )), 404

    @staticmethod
    def handle_generic_error(error: Exception) -> tuple:
        logger.error(f"Unexpected error: {str(error)}")
        logger.error(f"Traceback: {traceback.format_exc()}")

        return jsonify(Helpers.build_error_response(
            message="An unexpected error occurred",
            code="INTERNAL_ERROR"
        )), 500

    @staticmethod
    def log_request_info():
        """Log request information for debugging"""
        logger.debug(f"Request: {request.method} {request.path}")


def register_error_handlers(app):
    """Register error handlers with Flask app"""

    @app.errorhandler(SyncError)
    def handle_sync_error(error):
        return ErrorHandler.handle_sync_error(error)

    @app.errorhandler(400)
    def handle_bad_request(error):
        return ErrorHandler.handle_validation_error("Bad request")

    @app.errorhandler(404)
    def handle_not_found(error):
        return ErrorHandler.handle_not_found_error("Endpoint")

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify(Helpers.build_error_response(
            message="Method not allowed",
            code="METHOD_NOT_ALLOWED"
        )), 405

    @app.errorhandler(500)
    def handle_internal_error(error):
        return ErrorHandler.handle_generic_error(error)

    @app.errorhandler(Exception)
    def handle_unhandled_exception(error):
        return ErrorHandler.handle_generic_error(error)
