"""Domain error taxonomy.

Services raise these and the HTTP layer maps ``status_code`` straight onto the
response, so handlers never need to know which service failed.
"""
import functools
import logging

logger = logging.getLogger(__name__)


class ShopError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ShopError):
    status_code = 400


class ConflictError(ShopError):
    status_code = 400


class NotFoundError(ShopError):
    status_code = 404


class UnauthenticatedError(ShopError):
    status_code = 401


class AuthorizationError(ShopError):
    status_code = 403


class InternalError(ShopError):
    status_code = 500


def wrap_unexpected(action: str):
    """Re-raise domain errors untouched, turn anything else into InternalError."""
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except ShopError:
                raise
            except Exception as exc:
                logger.exception('%s', action)
                raise InternalError(f'{action}: {exc}') from exc
        return wrapper
    return decorator
