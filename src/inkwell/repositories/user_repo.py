"""Data access helpers for user accounts."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from inkwell.models.user import User

__all__ = ["UserRepository"]


class UserRepository:
    """Identity store: lookups and persistence for users."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, user_id: int) -> User | None:
        """Return a user by identifier."""
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        """Return a user by email, ignoring case."""
        result = self.session.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalars().first()

    def get_by_external_id(self, external_id: str) -> User | None:
        """Return the user linked to a federated identity."""
        result = self.session.execute(select(User).where(User.external_id == external_id))
        return result.scalars().first()

    def get_by_reset_token(self, token_hash: str) -> User | None:
        """Return the user holding the reset token with this digest."""
        result = self.session.execute(
            select(User).where(User.reset_password_token == token_hash)
        )
        return result.scalars().first()

    def create(self, **fields: object) -> User:
        """Insert a new user and flush so the id is assigned.

        The email is normalised to lower case before insert; a duplicate email
        or external id surfaces as ``IntegrityError`` from the flush.
        """
        email = fields.get("email")
        if isinstance(email, str):
            fields["email"] = email.strip().lower()
        user = User(**fields)
        self.session.add(user)
        self.session.flush()
        return user

    def save(self, user: User) -> User:
        """Commit pending changes to ``user`` and reload it."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user
