from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from utils.errors import AuthError, StoreUnavailableError, UnauthenticatedError

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = "1"


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # Every named auth failure carries its own code and status
    @app.errorhandler(AuthError)
    def handle_auth_error(err: AuthError):
        if err.status >= 500:
            logger.error("%s: %s", err.error, err.message)
        response, status = error_response(err.error, err.message, err.status, err.details)
        if isinstance(err, UnauthenticatedError):
            response.headers["WWW-Authenticate"] = "Bearer"
        if isinstance(err, StoreUnavailableError):
            response.headers["Retry-After"] = RETRY_AFTER_SECONDS
        return response, status

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        return error_response("INVALID_INPUT", "Invalid input", 422, details=err.messages)

    # Werkzeug HTTPExceptions map to their status codes (404, 405, ...)
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        code = (err.name or "Bad Request").upper().replace(" ", "_")
        return error_response(code, err.description, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        # In dev, include exception details to speed up debugging
        details = None
        logger.exception("Unhandled exception", exc_info=err)
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
