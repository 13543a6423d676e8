from flask import jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
import logging

logger = logging.getLogger(__name__)


class DevDocsError(Exception):
    """Expected, client-facing failure with a fixed status and error code."""
    status = 500
    error = "INTERNAL_ERROR"
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict | None = None):
        if message:
            self.message = message
        self.details = details
        super().__init__(self.message)


class BadRequest(DevDocsError):
    status = 400
    error = "BAD_REQUEST"
    message = "Bad request"


class Unauthenticated(DevDocsError):
    status = 401
    error = "UNAUTHENTICATED"
    message = "Authentication required"


class InvalidCredentials(DevDocsError):
    # Same text whether the account is missing or the password is wrong
    status = 401
    error = "INVALID_CREDENTIALS"
    message = "Invalid credentials"

    def __init__(self):
        super().__init__()


class NotFound(DevDocsError):
    status = 404
    error = "NOT_FOUND"
    message = "Resource not found"


class Conflict(DevDocsError):
    status = 409
    error = "CONFLICT"
    message = "Conflict"


class TooManyRequests(DevDocsError):
    status = 429
    error = "RATE_LIMITED"
    message = "Too many requests, please try again later"


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    @app.errorhandler(DevDocsError)
    def handle_app_error(err: DevDocsError):
        if err.status >= 500:
            logger.error("server error: %s", err.message, exc_info=err)
        return error_response(err.error, err.message, err.status, details=err.details)

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        return error_response("VALIDATION_ERROR", "Invalid input", 422, details=err.messages)

    # Integrity errors: a unique constraint lost a race against a concurrent insert
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        lower_msg = str(getattr(err, "orig", err)).lower()
        logger.warning("integrity error: %s", lower_msg)
        if "unique" in lower_msg or "duplicate" in lower_msg:
            return error_response("CONFLICT", "Resource already exists", 409)
        return error_response("BAD_REQUEST", "Integrity error.", 400)

    # Werkzeug HTTPExceptions (404 routing, 405, malformed JSON ...) map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        code = err.code or 400
        name = (err.name or "Error").upper().replace(" ", "_")
        return error_response(name, err.description or err.name, code)

    # 500 Internal Error (catch-all): full detail goes to the log, never to the client
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500)
