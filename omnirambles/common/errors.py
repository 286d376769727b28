import logging

from flask import jsonify
from flask_limiter import RateLimitExceeded
from marshmallow import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from omnirambles.extensions import db

logger = logging.getLogger("omnirambles.error")


class ApiError(Exception):
    status_code = 400
    code = "bad_request"

    def __init__(self, message, status_code=None, code=None, details=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.status_code
        self.code = code or self.code
        self.details = details or {}


class ValidationError(ApiError):
    """Input rejected by a business rule (password strength, content size...)."""
    status_code = 400
    code = "validation_error"


class NotFoundError(ApiError):
    """Missing resource, or one owned by someone else: the caller can't tell which."""
    status_code = 404
    code = "not_found"


class ConflictError(ApiError):
    status_code = 409
    code = "conflict"


class DuplicateEmail(ConflictError):
    code = "duplicate_email"


class DuplicateUsername(ConflictError):
    code = "duplicate_username"


class DuplicateTag(ConflictError):
    code = "duplicate_tag"


class AuthenticationError(ApiError):
    status_code = 401
    code = "authentication_required"


class InvalidCredentials(AuthenticationError):
    code = "invalid_credentials"

    def __init__(self, message="Invalid email or password.", **kwargs):
        super().__init__(message, **kwargs)


class AccountDisabled(AuthenticationError):
    status_code = 403
    code = "account_disabled"

    def __init__(self, message="Account is disabled.", **kwargs):
        super().__init__(message, **kwargs)


class AccountLocked(AuthenticationError):
    status_code = 423
    code = "account_locked"

    def __init__(self, retry_after_seconds: int):
        minutes = max(1, -(-retry_after_seconds // 60))
        super().__init__(
            f"Account is locked. Try again in {minutes} minutes.",
            details={"retry_after_seconds": retry_after_seconds, "retry_after_minutes": minutes},
        )
        self.retry_after_seconds = retry_after_seconds


class InvalidOrExpiredToken(AuthenticationError):
    status_code = 400
    code = "invalid_or_expired_token"

    def __init__(self, message="Invalid or expired reset token.", **kwargs):
        super().__init__(message, **kwargs)


class StorageError(ApiError):
    status_code = 500
    code = "storage_error"

    def __init__(self, message="Storage failure.", **kwargs):
        super().__init__(message, **kwargs)


def _json_error(message, status, code, details=None):
    return jsonify({
        "error": {"code": code, "message": message, "details": details or {}}
    }), status


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e: ApiError):
        return _json_error(e.message, e.status_code, e.code, e.details)

    @app.errorhandler(SchemaValidationError)
    def handle_validation_error(e: SchemaValidationError):
        return _json_error("Invalid request body.", 400, "validation_error", e.messages)

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(e):
        return _json_error("Rate limit exceeded.", 429, "rate_limited")

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        # Ex: 404, 405…
        return _json_error(e.description or "HTTP error", e.code or 500, "http_error")

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(e: SQLAlchemyError):
        db.session.rollback()
        logger.exception("storage_failure")
        return _json_error("Storage failure.", 500, "storage_error")

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("unexpected_error")
        return _json_error("Internal server error.", 500, "internal_error")
