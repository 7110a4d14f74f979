"""Credential and token helpers.

Password hashing uses Argon2id; access tokens are HS256 JWTs whose subject
is the user's numeric id.
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import UTC, datetime, timedelta

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt

from inkwell.core.settings import settings

_password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Return an Argon2id hash for the given password."""
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash.

    Args:
        password: Plain text password supplied by the client.
        password_hash: Stored Argon2id hash, or None for accounts without a password.

    Returns:
        True if the password matches; False otherwise.
    """
    if not password_hash:
        return False
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def create_access_token(user_id: int, extra_claims: dict[str, str] | None = None) -> str:
    """Create JWT access token for user authentication."""
    to_encode: dict[str, object] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> int:
    """Return the user id carried by an access token.

    Raises:
        JWTError: If the token is invalid, expired, or has no usable subject.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    subject = payload.get("sub")
    if subject is None:
        raise JWTError("Token has no subject")
    try:
        return int(subject)
    except (TypeError, ValueError) as err:
        raise JWTError("Token subject is not a user id") from err


def generate_reset_token() -> str:
    """Return a URL-safe single-use password reset token."""
    return secrets.token_urlsafe(32)


def generate_otp() -> str:
    """Return a six-digit one-time code."""
    return f"{100000 + secrets.randbelow(900000)}"


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest stored in place of a reset token or OTP."""
    return hashlib.sha256(token.encode()).hexdigest()


def verify_token(token: str, token_hash: str | None) -> bool:
    """Compare ``token`` against its stored digest in constant time."""
    if not token_hash:
        return False
    return secrets.compare_digest(hash_token(token), token_hash)


def decode_federated_assertion(assertion: str, secret: str) -> dict[str, str]:
    """Return the identity claims of an assertion signed by the login gateway.

    Raises:
        JWTError: If the signature, expiry or required claims are invalid.
    """
    payload = jwt.decode(assertion, secret, algorithms=[settings.jwt_algorithm])
    claims = {key: payload.get(key) for key in ("sub", "email", "name")}
    if not claims["sub"] or not claims["email"]:
        raise JWTError("Assertion must carry sub and email claims")
    return {key: str(value or "") for key, value in claims.items()}
