import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

log = logging.getLogger(__name__)

RESET_ENDPOINT = '/api/storage/reset'


class AppError(Exception):
    """Base exception class for application-specific errors."""

    def __init__(self, message=None, details=None, status_code=None):
        super().__init__(message)
        self.message = message or "An unexpected error occurred"
        self.details = details
        self.status_code = status_code or 500


class ConfigurationError(AppError):
    """The remote script URL is missing or still a placeholder."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Script URL is not configured",
            details=details,
            status_code=503
        )


class ConnectivityError(AppError):
    """No network, or the transport failed mid-request."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Connection error",
            details=details,
            status_code=503
        )


class RemoteDeploymentError(AppError):
    """The endpoint answered with markup instead of JSON."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or (
                "Permission error: the script returned a login page. "
                "Check that the web app is deployed with access 'Anyone'."
            ),
            details=details,
            status_code=502
        )


class RemoteLogicError(AppError):
    """The endpoint answered with success=false."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "The remote script reported an error",
            details=details,
            status_code=502
        )


class InvalidResponseError(AppError):
    """The endpoint answered with something that is neither markup nor a JSON object."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Invalid response from server (not JSON)",
            details=details,
            status_code=502
        )


class LocalStorageFailure(AppError):
    """The storage backend is unavailable. Recovered by the in-memory fallback."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Local storage unavailable",
            details=details,
            status_code=500
        )


class CorruptLocalState(AppError):
    """A stored list failed to parse. Recovered by treating it as empty."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Stored data is corrupt",
            details=details,
            status_code=500
        )


class ValidationError(AppError):
    """Exception for data validation errors."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Validation error",
            details=details,
            status_code=400
        )


class ResourceNotFoundError(AppError):
    """Exception for requests to non-existent resources."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Resource not found",
            details=details,
            status_code=404
        )


def error_payload(error_name, message, details=None, **extra):
    payload = {"success": False, "error": error_name, "message": message}
    if details is not None:
        payload["details"] = details
    payload.update(extra)
    return payload


def register_error_handlers(app):
    """Register application error handlers."""

    @app.errorhandler(AppError)
    def handle_app_error(e):
        """Handle application specific errors."""
        return jsonify(error_payload(type(e).__name__, e.message, e.details)), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle Werkzeug HTTP exceptions."""
        return jsonify(error_payload(e.name, e.description)), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        """Last resort: offer the destructive local reset."""
        log.exception("Unrecoverable error: %s", e)
        return jsonify(error_payload(
            "UnrecoverableRenderFailure",
            "Something went wrong. Resetting local data clears the problem "
            "but deletes records that were not synced.",
            recovery=RESET_ENDPOINT,
        )), 500
