"""Error hierarchy shared by services, guards and HTTP handlers.

Every domain failure is an `ApiError` carrying the HTTP status it maps
to. `main.py` installs one exception handler for the whole hierarchy so
controllers never translate errors by hand.
"""

import functools
import logging

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("exercise_api.services")


class ApiError(Exception):
    """Base class for errors rendered as a JSON error envelope."""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"error": {"message": self.message, "status": self.status_code}}


class BadRequestError(ApiError):
    """Malformed or semantically empty input, duplicates."""
    status_code = 400


class UnauthorizedError(ApiError):
    """Bad credentials."""
    status_code = 401


class UnauthenticatedError(UnauthorizedError):
    """Missing, invalid, tampered or expired session token."""


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class StorageError(ApiError):
    """Unexpected database failure, distinct from the domain errors above."""
    status_code = 500


def storage_errors(method):
    """Wrap a service method so raw SQLAlchemy failures become `StorageError`.

    The owning service must expose `self.session`; it is rolled back on
    any failure so no partial mutation survives the request. `ApiError`s
    pass through unchanged.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except ApiError:
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("storage failure in %s", method.__qualname__)
            raise StorageError("Storage failure") from exc
    return wrapper
