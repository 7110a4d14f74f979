# src/inkwell/models/user.py
"""SQLAlchemy models for user accounts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inkwell.db.session import Base
from inkwell.db.time import as_utc, utcnow


class UserRole(str, Enum):
    """Roles recognised by the authorization rules."""

    ADMIN = "admin"
    AUTHOR = "author"
    READER = "reader"
    ANONYMOUS = "anonymous"


class User(Base):
    """Local or federated account.

    Exactly one row carries the ``anonymous`` role: the sentinel that takes
    over authorship of posts whose authors removed them permanently. Its
    reserved email is unique, which is what keeps it a singleton.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Always stored lower-cased.
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    # Identity id from the federated login provider.
    external_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    password_hash: Mapped[str | None] = mapped_column(Text, nullable=True)

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.READER.value)
    bio: Mapped[str | None] = mapped_column(String(500), nullable=True)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Security state, owned by the authentication flows.
    login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_failed_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    login_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Reset token and OTP are stored as SHA-256 digests.
    reset_password_token: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    reset_password_expires: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reset_password_otp: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reset_password_otp_expires: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    password_reset_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_password_reset_attempt: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def is_admin(self) -> bool:
        """Return True for administrators."""
        return self.role == UserRole.ADMIN.value

    @property
    def is_anonymous_sentinel(self) -> bool:
        """Return True for the shared anonymous identity."""
        return self.role == UserRole.ANONYMOUS.value

    def is_locked(self, now: datetime) -> bool:
        """Return True while a login lockout is in force."""
        return self.lock_until is not None and as_utc(self.lock_until) > now
