from flask import current_app, g, request
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError as SchemaValidationError
from sqlalchemy.exc import DataError, IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
import logging

from api.responses import error_response
from models import storage
from services.errors import RateLimited, ServiceError, ServiceUnavailable

logger = logging.getLogger(__name__)


def _context() -> str:
    principal = g.get("principal_id") or "anonymous"
    return f"{request.method} {request.path} principal={principal}"


def _log(status: int, message: str, exc: Exception | None = None):
    if status >= 500:
        logger.error("%s -> %s %s", _context(), status, message, exc_info=exc)
    else:
        logger.warning("%s -> %s %s", _context(), status, message)


def _flatten(messages, prefix: str = "") -> list:
    """Turn marshmallow's nested messages into [{field, message}]."""
    errors = []
    if isinstance(messages, dict):
        for field, value in messages.items():
            name = f"{prefix}.{field}" if prefix else str(field)
            errors.extend(_flatten(value, name))
    elif isinstance(messages, (list, tuple)):
        for value in messages:
            if isinstance(value, (dict, list, tuple)):
                errors.extend(_flatten(value, prefix))
            else:
                errors.append({"field": prefix or None, "message": str(value)})
    else:
        errors.append({"field": prefix or None, "message": str(messages)})
    return errors


def _rollback():
    try:
        storage.rollback()
    except Exception:  # session may already be unusable; teardown removes it
        logger.debug("Rollback after database error failed", exc_info=True)


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        _log(err.status_code, err.message, err if err.status_code >= 500 else None)
        response, status = error_response(err.message, err.status_code, errors=[err.to_dict()])
        if isinstance(err, RateLimited):
            response.headers["Retry-After"] = str(err.retry_after)
        elif isinstance(err, ServiceUnavailable):
            response.headers["Retry-After"] = str(err.retry_after)
        return response, status

    # Marshmallow validation errors map to 400
    @app.errorhandler(SchemaValidationError)
    def handle_validation_error(err: SchemaValidationError):
        errors = _flatten(err.messages)
        _log(400, f"Validation error on {[e['field'] for e in errors]}")
        return error_response("Validation error", 400, errors=errors)

    # Integrity errors (unique constraints, FK violations, not-null)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        _rollback()
        lower_msg = str(getattr(err, "orig", err)).lower()
        if "unique" in lower_msg or "duplicate" in lower_msg:
            status, message = 409, "Resource already exists"
        elif "foreign key" in lower_msg:
            status, message = 400, "Referenced resource does not exist or is still in use"
        elif "not null" in lower_msg or "not-null" in lower_msg:
            status, message = 400, "Required field is missing"
        else:
            status, message = 400, "Integrity error"
        _log(status, f"{message} ({err.__class__.__name__})")
        return error_response(message, status)

    @app.errorhandler(DataError)
    def handle_data_error(err: DataError):
        _rollback()
        _log(400, "Invalid data format")
        return error_response("Invalid data format", 400)

    # Pool exhaustion and dropped connections are retryable
    @app.errorhandler(PoolTimeoutError)
    @app.errorhandler(OperationalError)
    def handle_db_unavailable(err):
        _rollback()
        _log(503, f"Database unavailable ({err.__class__.__name__})", err)
        response, status = error_response("Service temporarily unavailable, please retry", 503)
        response.headers["Retry-After"] = "1"
        return response, status

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = err.code or 400
        if status == 404:
            message = f"Route {request.method} {request.path} not found"
        elif status == 413:
            message = "Uploaded payload is too large"
        else:
            message = err.description or err.name
        _log(status, message)
        return error_response(message, status)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        _rollback()
        _log(500, "Unhandled exception", err)
        errors = None
        if current_app and current_app.debug:
            errors = [{"type": err.__class__.__name__, "message": str(err)}]
        return error_response("Internal server error", 500, errors=errors)
