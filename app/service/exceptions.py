import functools
import logging

import httpx
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

import app.config.config as configs

logger = logging.getLogger(__name__)


class SupportError(Exception):
    status_code = 500
    error_code = "SERVER_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, error_code: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if error_code:
            self.error_code = error_code


class NotFoundError(SupportError):
    status_code = 404
    error_code = "RESOURCE_NOT_FOUND"
    default_message = "Resource not found"


class ForbiddenError(SupportError):
    status_code = 403
    error_code = "ACCESS_FORBIDDEN"
    default_message = "Access forbidden"


class ValidationError(SupportError):
    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class ConflictError(SupportError):
    status_code = 409
    error_code = "CONFLICT_ERROR"
    default_message = "Conflict occurred"


class TransientError(SupportError):
    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"
    default_message = configs.UNAVAILABLE_MESSAGE


PERSISTENCE_ERRORS = (SQLAlchemyError, RedisError, httpx.HTTPError)


def persistence_guard(operation: str):
    """Wrap storage and collaborator failures into TransientError.

    The caller only sees the generic message; the full traceback is logged here.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except PERSISTENCE_ERRORS as exc:
                logger.exception("%s failed", operation)
                raise TransientError() from exc

        return wrapper

    return decorator
