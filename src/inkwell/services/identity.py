# src/inkwell/services/identity.py
"""Account registration, login with lockout, password reset, federated login and profiles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from inkwell.core.security import (
    generate_otp,
    generate_reset_token,
    hash_password,
    hash_token,
    verify_password,
    verify_token,
)
from inkwell.core.settings import settings
from inkwell.db.time import as_utc, utcnow
from inkwell.models import User, UserRole
from inkwell.repositories.user_repo import UserRepository
from inkwell.services.errors import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ResetRejectedError,
    TooManyRequestsError,
    ValidationFailedError,
    commit_or_raise,
)
from inkwell.services.permissions import Action, authorize

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "User already exists"


@dataclass(frozen=True)
class PasswordResetTicket:
    """Reset credentials to hand to the account owner.

    Only SHA-256 digests of ``token`` and ``otp`` are stored.
    """

    user: User
    token: str
    otp: str
    token_expires: datetime
    otp_expires: datetime

    @property
    def reset_url(self) -> str:
        return f"{settings.password_reset_url.rstrip('/')}/{self.token}"


def _unexpired(expires: datetime | None, now: datetime) -> bool:
    return expires is not None and as_utc(expires) > now


def log_reset_delivery(ticket: PasswordResetTicket) -> None:
    """Default reset delivery; records the issue without the secrets.

    Deployments send the link and code by overriding the API's
    ``get_reset_delivery_dep`` with a mail transport.
    """
    logger.info(
        "Password reset for user %s ready for delivery (link valid until %s)",
        ticket.user.id, ticket.token_expires.isoformat(),
    )


class IdentityService:
    """Creates users and verifies their credentials."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.users = UserRepository(db)

    def register(self, name: str, email: str, password: str) -> User:
        """Create a local account with the ``reader`` role.

        Raises:
            ConflictError: If the email is already registered
        """
        if self.users.get_by_email(email) is not None:
            raise ConflictError(DUPLICATE_EMAIL)
        user = self.users.create(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.READER.value,
        )
        commit_or_raise(self.db, "registering a user", conflict=DUPLICATE_EMAIL)
        self.db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    def authenticate(self, email: str, password: str, now: datetime | None = None) -> User:
        """Return the user owning ``email`` if ``password`` matches.

        Each failure counts toward a lockout. Once the counter reaches
        ``max_login_attempts`` the account is locked for ``lockout_minutes``;
        the first failure after a lock has expired starts the count again.

        Raises:
            AuthenticationError: If the email is unknown or the password is wrong
            AccountLockedError: While the account is locked
        """
        now = now or utcnow()
        user = self.users.get_by_email(email)
        if user is None or user.is_anonymous_sentinel:
            raise AuthenticationError()
        if user.is_locked(now):
            raise AccountLockedError()

        if not verify_password(password, user.password_hash):
            self._record_failure(user, now)
            raise AuthenticationError()
        if not user.is_active:
            raise AuthenticationError("Account is disabled")

        user.login_attempts = 0
        user.lock_until = None
        user.last_login = now
        user.login_count += 1
        commit_or_raise(self.db, "recording a login")
        self.db.refresh(user)
        return user

    def _record_failure(self, user: User, now: datetime) -> None:
        if user.lock_until is not None and as_utc(user.lock_until) <= now:
            user.lock_until = None
            user.login_attempts = 1
        else:
            user.login_attempts += 1
            if user.login_attempts >= settings.max_login_attempts:
                user.lock_until = now + timedelta(minutes=settings.lockout_minutes)
                logger.warning("User %s locked after %d failed logins", user.id, user.login_attempts)
        user.last_failed_login = now
        commit_or_raise(self.db, "recording a failed login")

    # Password reset

    def request_password_reset(
        self, email: str, now: datetime | None = None
    ) -> PasswordResetTicket:
        """Issue a fresh reset token and OTP for the account owning ``email``.

        At most ``password_reset_max_attempts`` requests are honoured per
        ``password_reset_window_minutes``; the window starts at the first
        request and restarts once it has elapsed. Issuing replaces any
        earlier token and OTP.

        Raises:
            NotFoundError: If no account uses ``email``
            TooManyRequestsError: When the window's allowance is used up
        """
        now = now or utcnow()
        user = self.users.get_by_email(email)
        if user is None or user.is_anonymous_sentinel:
            raise NotFoundError("User not found")

        window = timedelta(minutes=settings.password_reset_window_minutes)
        started = user.first_password_reset_attempt
        if started is None or now - as_utc(started) >= window:
            user.password_reset_attempts = 0
            user.first_password_reset_attempt = now
        elif user.password_reset_attempts >= settings.password_reset_max_attempts:
            raise TooManyRequestsError("Too many password reset attempts. Try again later.")
        user.password_reset_attempts += 1

        ticket = PasswordResetTicket(
            user=user,
            token=generate_reset_token(),
            otp=generate_otp(),
            token_expires=now + timedelta(minutes=settings.reset_token_expire_minutes),
            otp_expires=now + timedelta(minutes=settings.reset_otp_expire_minutes),
        )
        user.reset_password_token = hash_token(ticket.token)
        user.reset_password_expires = ticket.token_expires
        user.reset_password_otp = hash_token(ticket.otp)
        user.reset_password_otp_expires = ticket.otp_expires
        commit_or_raise(self.db, "issuing a password reset")
        logger.info(
            "Password reset issued for user %s (request %d in window)",
            user.id, user.password_reset_attempts,
        )
        return ticket

    def reset_with_token(self, token: str, password: str, now: datetime | None = None) -> User:
        """Set a new password using the token from the reset link.

        Raises:
            ResetRejectedError: If the token is unknown, used or expired
        """
        now = now or utcnow()
        user = self.users.get_by_reset_token(hash_token(token))
        if user is None or not _unexpired(user.reset_password_expires, now):
            raise ResetRejectedError("Invalid or expired token")
        return self._replace_password(user, password)

    def reset_with_otp(
        self, email: str, otp: str, password: str, now: datetime | None = None
    ) -> User:
        """Set a new password using the delivered six-digit code.

        Raises:
            ResetRejectedError: If the code does not match or has expired
        """
        now = now or utcnow()
        user = self.users.get_by_email(email)
        if (
            user is None
            or not verify_token(otp, user.reset_password_otp)
            or not _unexpired(user.reset_password_otp_expires, now)
        ):
            raise ResetRejectedError("Invalid or expired OTP")
        return self._replace_password(user, password)

    def _replace_password(self, user: User, password: str) -> User:
        # Both credentials are single use: either path burns the other.
        user.password_hash = hash_password(password)
        user.reset_password_token = None
        user.reset_password_expires = None
        user.reset_password_otp = None
        user.reset_password_otp_expires = None
        commit_or_raise(self.db, "resetting a password")
        self.db.refresh(user)
        logger.info("Password reset completed for user %s", user.id)
        return user

    def resolve_federated_user(self, external_id: str, email: str, name: str) -> User:
        """Return the local user for a federated identity, creating it if needed.

        An existing account with the same email is linked to the identity
        rather than duplicated.
        """
        user = self.users.get_by_external_id(external_id)
        if user is not None:
            return user

        user = self.users.get_by_email(email)
        if user is not None:
            if user.is_anonymous_sentinel:
                raise ForbiddenError("This identity cannot be used to sign in")
            user.external_id = external_id
            commit_or_raise(self.db, "linking a federated identity")
            self.db.refresh(user)
            logger.info("Linked federated identity to user %s", user.id)
            return user

        user = self.users.create(
            name=name[:50] or email.split("@")[0],
            email=email,
            external_id=external_id,
            role=UserRole.READER.value,
        )
        commit_or_raise(self.db, "creating a federated user", conflict=DUPLICATE_EMAIL)
        self.db.refresh(user)
        logger.info("Created user %s from federated login", user.id)
        return user

    def update_profile(
        self,
        user: User,
        *,
        name: str | None = None,
        bio: str | None = None,
        avatar: str | None = None,
    ) -> User:
        """Change the caller's display fields."""
        if name is not None:
            user.name = name.strip()
        if bio is not None:
            user.bio = bio
        if avatar is not None:
            user.avatar = avatar
        commit_or_raise(self.db, "updating a profile")
        self.db.refresh(user)
        return user

    def set_role(self, caller: User, user_id: int, role: UserRole) -> User:
        """Change another user's role.

        Raises:
            ForbiddenError: Unless the caller is an admin
            NotFoundError: If the user does not exist
            ValidationFailedError: For the anonymous role or the anonymous user
        """
        authorize(caller, Action.MANAGE_USERS)
        if role is UserRole.ANONYMOUS:
            raise ValidationFailedError("The anonymous role cannot be assigned")
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if user.is_anonymous_sentinel:
            raise ValidationFailedError("The anonymous user cannot be changed")
        user.role = role.value
        commit_or_raise(self.db, "changing a role")
        self.db.refresh(user)
        logger.info("User %s role set to %s by admin %s", user.id, role.value, caller.id)
        return user
