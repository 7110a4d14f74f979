# src/inkwell/services/anonymization.py
"""Lookup-or-create for the shared anonymous identity."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inkwell.core.settings import settings
from inkwell.models import User, UserRole
from inkwell.repositories.user_repo import UserRepository
from inkwell.services.errors import StorageError

logger = logging.getLogger(__name__)


def resolve_anonymous_sentinel(db: Session) -> User:
    """Return the anonymous user, creating it on first use.

    The reserved email is unique, so when two callers race on the first
    creation the loser's insert fails and it re-reads the winner's row.
    The insert runs in a savepoint; the caller's pending work is kept.

    Args:
        db: Database session

    Returns:
        The single user with the ``anonymous`` role

    Raises:
        StorageError: If the sentinel can neither be created nor found
    """
    users = UserRepository(db)
    sentinel = users.get_by_email(settings.anonymous_email)
    if sentinel is not None:
        return sentinel

    try:
        with db.begin_nested():
            sentinel = users.create(
                email=settings.anonymous_email,
                name=settings.anonymous_name,
                role=UserRole.ANONYMOUS.value,
                password_hash=None,
                is_active=False,
            )
    except IntegrityError:
        logger.info("Anonymous user created concurrently, re-reading it")
        sentinel = users.get_by_email(settings.anonymous_email)
        if sentinel is None:
            raise StorageError("Anonymous user could not be resolved") from None
        return sentinel

    logger.info("Created anonymous user id=%s", sentinel.id)
    return sentinel
