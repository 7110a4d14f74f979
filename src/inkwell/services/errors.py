"""Domain exceptions raised by the Inkwell services.

Each exception carries the HTTP status the API layer answers with, so
endpoints can let them propagate and a single handler renders them.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class DomainError(RuntimeError):
    """Base class for failures the services surface to callers."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(DomainError):
    """Entity is absent or hidden by soft-delete visibility rules."""

    status_code = 404
    default_message = "Not found"


class ForbiddenError(DomainError):
    """Caller is authenticated but not allowed to perform the operation."""

    status_code = 403
    default_message = "Not authorized to perform this action"


class ConflictError(DomainError):
    """Operation collides with existing state (duplicate slug, repeat report)."""

    status_code = 409
    default_message = "Conflict"


class InvalidTransitionError(ConflictError):
    """Lifecycle transition whose precondition does not hold."""

    default_message = "Invalid state transition"


class ValidationFailedError(DomainError):
    """Input is well-formed but semantically unacceptable."""

    status_code = 422
    default_message = "Validation failed"


class AuthenticationError(DomainError):
    """Credentials were missing or did not match."""

    status_code = 401
    default_message = "Invalid credentials"


class AccountLockedError(DomainError):
    """Too many failed logins; the account is temporarily locked."""

    status_code = 423
    default_message = "Account is locked"


class ResetRejectedError(DomainError):
    """A password reset token or OTP is unknown, used or expired."""

    status_code = 400
    default_message = "Invalid or expired token"


class TooManyRequestsError(DomainError):
    """The caller exhausted the allowance for a rate-limited action."""

    status_code = 429
    default_message = "Too many requests"


class StorageError(DomainError):
    """Persistent store failed while applying a change."""

    status_code = 500
    default_message = "Storage failure"


def commit_or_raise(db: Session, context: str, conflict: str | None = None) -> None:
    """Commit the session, translating store failures into domain errors.

    Args:
        db: Database session holding the pending changes
        context: Short description of the change, used in the log line
        conflict: Message for :class:`ConflictError` when a uniqueness
            constraint rejects the change; without it the failure is a
            :class:`StorageError`

    Raises:
        ConflictError: If ``conflict`` is given and an integrity check failed
        StorageError: For any other database failure
    """
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        if conflict is not None:
            raise ConflictError(conflict) from err
        logger.error("Integrity failure while %s", context, exc_info=True)
        raise StorageError(f"Could not complete {context}") from err
    except SQLAlchemyError as err:
        db.rollback()
        logger.error("Database failure while %s", context, exc_info=True)
        raise StorageError(f"Could not complete {context}") from err
