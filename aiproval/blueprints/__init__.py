"""
Aiproval
Blueprint registry and shared error handlers.

Every blueprint calls ``register_error_handlers(bp)`` once, so services can
raise the exceptions from ``aiproval.core.exceptions`` and every failure
leaves as the standard ``{success: false, error, code}`` envelope.
"""

import logging

from flask import request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from aiproval.core.exceptions import (
    AuthError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from aiproval.models import db
from aiproval.utils.errors import E, api_error

logger = logging.getLogger(__name__)

HTTP_STATUS_CODES = {
    400: E.VALIDATION_INVALID,
    401: E.UNAUTHORIZED,
    403: E.FORBIDDEN,
    404: E.NOT_FOUND,
    405: E.METHOD_NOT_ALLOWED,
    409: E.CONFLICT_STATE,
    413: E.PAYLOAD_TOO_LARGE,
    415: E.UNSUPPORTED_MEDIA,
    429: E.RATE_LIMITED,
}


def http_error_response(error: HTTPException):
    status = error.code or 500
    code = HTTP_STATUS_CODES.get(status, E.INTERNAL)
    message = {
        413: "Request body too large",
        429: "Rate limit exceeded",
    }.get(status, error.description if status < 500 else "Internal server error")
    return api_error(code, message, status=status)


def register_error_handlers(bp):
    """Attach the platform exception → envelope mapping to ``bp``."""

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details or None)

    @bp.errorhandler(AuthError)
    def _handle_auth(error: AuthError):
        return api_error(E.UNAUTHORIZED, str(error))

    @bp.errorhandler(ForbiddenError)
    def _handle_forbidden(error: ForbiddenError):
        return api_error(E.FORBIDDEN, str(error))

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        logger.info("Not found: %s", error)
        return api_error(E.NOT_FOUND, error.public_message)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, error.public_message)

    @bp.errorhandler(InvalidStateError)
    def _handle_invalid_state(error: InvalidStateError):
        logger.error("Invariant violation: %s", error, extra={"details": error.details})
        return api_error(E.CONFLICT_STATE, str(error), details=error.details or None)

    @bp.errorhandler(UpstreamError)
    def _handle_upstream(error: UpstreamError):
        return api_error(E.UPSTREAM, str(error), details={"service": error.service})

    @bp.errorhandler(IntegrityError)
    def _handle_integrity(error: IntegrityError):
        db.session.rollback()
        logger.warning("Integrity error on %s: %s", request.path, error.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Resource already exists")

    @bp.errorhandler(SQLAlchemyError)
    def _handle_database(error: SQLAlchemyError):
        db.session.rollback()
        logger.exception("Database error on %s", request.path)
        return api_error(E.DATABASE, "Database error", details={"error": str(error)})

    @bp.errorhandler(HTTPException)
    def _handle_http(error: HTTPException):
        return http_error_response(error)

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error", details={"error": str(error)})
