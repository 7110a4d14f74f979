"""Shared API dependencies for authentication and common functionality."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from inkwell.core.security import decode_access_token
from inkwell.db.session import get_db
from inkwell.models import User
from inkwell.services.identity import PasswordResetTicket, log_reset_delivery
from inkwell.services.media import MediaStore, get_media_store

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _user_from_token(token: str, db: Session) -> User:
    """Resolve a bearer token to an active user.

    Raises:
        HTTPException: If the token is invalid or the user is missing or inactive
    """
    try:
        user_id = decode_access_token(token)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    return _user_from_token(credentials.credentials, db)


def get_optional_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)
    ],
    db: SessionDep,
) -> User | None:
    """Return the caller when a bearer token is sent, otherwise None.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, db)


def get_media_store_dep() -> MediaStore:
    """Return the shared media store."""
    return get_media_store()


def get_reset_delivery_dep() -> Callable[[PasswordResetTicket], None]:
    """Return the callable that hands reset links and codes to their owners."""
    return log_reset_delivery


# Type aliases for user and collaborator dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
MediaStoreDep = Annotated[MediaStore, Depends(get_media_store_dep)]
ResetDeliveryDep = Annotated[
    Callable[[PasswordResetTicket], None], Depends(get_reset_delivery_dep)
]
