"""Authentication endpoints for the Inkwell API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from jose import JWTError

from inkwell.api.v1.dependencies import CurrentUserDep, ResetDeliveryDep, SessionDep
from inkwell.core.security import create_access_token, decode_federated_assertion
from inkwell.core.settings import settings
from inkwell.models import User
from inkwell.schemas.common import Message
from inkwell.schemas.user import (
    FederatedLoginRequest,
    ForgotPasswordRequest,
    LastLoginDetails,
    LoginRequest,
    LoginResponse,
    OtpResetRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from inkwell.services.errors import AuthenticationError
from inkwell.services.identity import IdentityService

router = APIRouter(prefix="/auth", tags=["authentication"])


def _login_response(user: User) -> LoginResponse:
    return LoginResponse(
        access_token=create_access_token(user.id, {"role": user.role}),
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: SessionDep) -> LoginResponse:
    """Create a reader account and sign it in.

    Raises:
        ConflictError: If the email is already registered
    """
    user = IdentityService(db).register(payload.name, payload.email, payload.password)
    return _login_response(user)


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, db: SessionDep) -> LoginResponse:
    """Exchange email and password for a bearer token.

    Raises:
        AuthenticationError: If the credentials do not match
        AccountLockedError: After too many failed attempts
    """
    user = IdentityService(db).authenticate(payload.email, payload.password)
    return _login_response(user)


@router.post("/federated", response_model=LoginResponse)
async def federated_login(payload: FederatedLoginRequest, db: SessionDep) -> LoginResponse:
    """Exchange a login gateway's identity assertion for a bearer token.

    The gateway completes the provider handshake and signs the verified
    identity (``sub``, ``email``, ``name``) with the shared federation secret.
    """
    if not settings.federation_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Federated login is not configured",
        )
    try:
        claims = decode_federated_assertion(payload.assertion, settings.federation_secret)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid identity assertion",
        ) from err

    user = IdentityService(db).resolve_federated_user(
        claims["sub"], claims["email"], claims["name"]
    )
    if not user.is_active:
        raise AuthenticationError("Account is disabled")
    return _login_response(user)


@router.post("/forgot-password", response_model=Message)
async def forgot_password(
    payload: ForgotPasswordRequest,
    db: SessionDep,
    deliver: ResetDeliveryDep,
) -> Message:
    """Issue a reset link and a six-digit code for the account.

    Raises:
        NotFoundError: If no account uses the email
        TooManyRequestsError: After too many requests in the reset window
    """
    ticket = IdentityService(db).request_password_reset(payload.email)
    deliver(ticket)
    return Message(message="Password reset instructions sent")


@router.post("/reset-password/{token}", response_model=Message)
async def reset_password_with_token(
    token: str, payload: ResetPasswordRequest, db: SessionDep
) -> Message:
    """Set a new password with the token from the reset link."""
    IdentityService(db).reset_with_token(token, payload.password)
    return Message(message="Password reset successful")


@router.post("/reset-password-otp", response_model=Message)
async def reset_password_with_otp(payload: OtpResetRequest, db: SessionDep) -> Message:
    """Set a new password with the six-digit reset code."""
    IdentityService(db).reset_with_otp(payload.email, payload.otp, payload.password)
    return Message(message="Password reset successful")


@router.get("/me", response_model=UserResponse)
async def me(current_user: CurrentUserDep) -> User:
    """Return the signed-in account."""
    return current_user


@router.get("/last-login-details", response_model=LastLoginDetails)
async def last_login_details(current_user: CurrentUserDep) -> LastLoginDetails:
    """Return the caller's recent sign-in activity."""
    return LastLoginDetails(
        last_login=current_user.last_login,
        last_failed_login=current_user.last_failed_login,
        total_logins=current_user.login_count,
    )
