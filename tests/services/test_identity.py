# tests/services/test_identity.py
"""Tests for registration, login lockout, password reset and role management."""

from datetime import timedelta

import pytest

from inkwell.core.settings import settings
from inkwell.db.time import as_utc, utcnow
from inkwell.models import UserRole
from inkwell.services.anonymization import resolve_anonymous_sentinel
from inkwell.services.errors import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ResetRejectedError,
    TooManyRequestsError,
    ValidationFailedError,
)
from inkwell.services.identity import IdentityService


@pytest.fixture()
def service(db_session):
    return IdentityService(db_session)


@pytest.fixture()
def member(service):
    return service.register("Mina Member", "Mina@Example.com", "Sup3rSecret")


def test_register_creates_reader(member):
    assert member.role == UserRole.READER.value
    assert member.email == "mina@example.com"
    assert member.password_hash and member.password_hash != "Sup3rSecret"


def test_register_duplicate_email(service, member):
    with pytest.raises(ConflictError) as exc_info:
        service.register("Someone Else", "MINA@example.com", "An0therOne")
    assert exc_info.value.message == "User already exists"


def test_authenticate_success_records_login(service, member):
    user = service.authenticate("mina@example.com", "Sup3rSecret")
    assert user.id == member.id
    assert user.login_count == 1
    assert user.login_attempts == 0
    assert user.last_login is not None


def test_unknown_email_is_rejected(service):
    with pytest.raises(AuthenticationError):
        service.authenticate("nobody@example.com", "Sup3rSecret")


def test_lockout_after_max_failures(service, member):
    now = utcnow()
    for _ in range(settings.max_login_attempts):
        with pytest.raises(AuthenticationError):
            service.authenticate(member.email, "wrong", now=now)

    assert member.login_attempts == settings.max_login_attempts
    assert as_utc(member.lock_until) == now + timedelta(minutes=settings.lockout_minutes)

    # The right password does not help while the lock holds.
    with pytest.raises(AccountLockedError):
        service.authenticate(member.email, "Sup3rSecret", now=now + timedelta(minutes=1))


def test_expired_lock_allows_login(service, member):
    now = utcnow()
    for _ in range(settings.max_login_attempts):
        with pytest.raises(AuthenticationError):
            service.authenticate(member.email, "wrong", now=now)

    later = now + timedelta(minutes=settings.lockout_minutes, seconds=1)
    user = service.authenticate(member.email, "Sup3rSecret", now=later)
    assert user.lock_until is None
    assert user.login_attempts == 0


def test_failure_after_expired_lock_restarts_count(service, member):
    now = utcnow()
    for _ in range(settings.max_login_attempts):
        with pytest.raises(AuthenticationError):
            service.authenticate(member.email, "wrong", now=now)

    later = now + timedelta(minutes=settings.lockout_minutes, seconds=1)
    with pytest.raises(AuthenticationError):
        service.authenticate(member.email, "wrong", now=later)
    assert member.login_attempts == 1
    assert member.lock_until is None


def test_sentinel_cannot_sign_in(db_session, service):
    sentinel = resolve_anonymous_sentinel(db_session)
    db_session.commit()
    with pytest.raises(AuthenticationError):
        service.authenticate(sentinel.email, "anything")


def test_inactive_account_is_rejected(service, make_user):
    user = make_user(UserRole.READER, password="Sup3rSecret", is_active=False)
    with pytest.raises(AuthenticationError):
        service.authenticate(user.email, "Sup3rSecret")


# Password reset


def test_password_reset_by_token(service, member):
    ticket = service.request_password_reset("MINA@example.com")

    assert ticket.user.id == member.id
    assert member.reset_password_token != ticket.token
    assert ticket.reset_url.endswith(f"/{ticket.token}")

    service.reset_with_token(ticket.token, "N3wPassword")
    assert service.authenticate("mina@example.com", "N3wPassword").id == member.id
    assert member.reset_password_token is None
    assert member.reset_password_otp is None


def test_password_reset_by_otp(service, member):
    ticket = service.request_password_reset(member.email)
    assert len(ticket.otp) == 6 and ticket.otp.isdigit()

    service.reset_with_otp(member.email, ticket.otp, "N3wPassword")
    assert service.authenticate(member.email, "N3wPassword").id == member.id


def test_reset_credentials_are_single_use(service, member):
    ticket = service.request_password_reset(member.email)
    service.reset_with_otp(member.email, ticket.otp, "N3wPassword")

    with pytest.raises(ResetRejectedError):
        service.reset_with_token(ticket.token, "Another1Password")
    with pytest.raises(ResetRejectedError):
        service.reset_with_otp(member.email, ticket.otp, "Another1Password")


def test_reset_rejects_wrong_or_expired_credentials(service, member):
    issued = utcnow()
    ticket = service.request_password_reset(member.email, now=issued)

    with pytest.raises(ResetRejectedError):
        service.reset_with_token("not-the-token", "N3wPassword")
    with pytest.raises(ResetRejectedError):
        service.reset_with_otp(member.email, "000000", "N3wPassword")

    otp_expired = issued + timedelta(minutes=settings.reset_otp_expire_minutes, seconds=1)
    with pytest.raises(ResetRejectedError):
        service.reset_with_otp(member.email, ticket.otp, "N3wPassword", now=otp_expired)
    # The link outlives the code.
    service.reset_with_token(ticket.token, "N3wPassword", now=otp_expired)

    ticket = service.request_password_reset(member.email, now=issued)
    token_expired = issued + timedelta(minutes=settings.reset_token_expire_minutes, seconds=1)
    with pytest.raises(ResetRejectedError):
        service.reset_with_token(ticket.token, "Another1Password", now=token_expired)


def test_new_request_replaces_earlier_token(service, member):
    first = service.request_password_reset(member.email)
    second = service.request_password_reset(member.email)
    with pytest.raises(ResetRejectedError):
        service.reset_with_token(first.token, "N3wPassword")
    service.reset_with_token(second.token, "N3wPassword")


def test_reset_requests_are_limited_per_window(service, member):
    start = utcnow()
    for _ in range(settings.password_reset_max_attempts):
        service.request_password_reset(member.email, now=start)
    with pytest.raises(TooManyRequestsError):
        service.request_password_reset(member.email, now=start + timedelta(minutes=5))

    later = start + timedelta(minutes=settings.password_reset_window_minutes)
    service.request_password_reset(member.email, now=later)
    assert member.password_reset_attempts == 1
    assert as_utc(member.first_password_reset_attempt) == later


def test_reset_for_unknown_email_or_sentinel(db_session, service):
    with pytest.raises(NotFoundError):
        service.request_password_reset("nobody@example.com")
    sentinel = resolve_anonymous_sentinel(db_session)
    db_session.commit()
    with pytest.raises(NotFoundError):
        service.request_password_reset(sentinel.email)


# Federated login


def test_federated_login_creates_then_reuses(service):
    first = service.resolve_federated_user("oidc|123", "fed@example.com", "Fed User")
    second = service.resolve_federated_user("oidc|123", "fed@example.com", "Fed User")
    assert first.id == second.id
    assert first.password_hash is None
    assert first.role == UserRole.READER.value


def test_federated_login_links_existing_email(service, member):
    user = service.resolve_federated_user("oidc|456", "mina@example.com", "Mina")
    assert user.id == member.id
    assert user.external_id == "oidc|456"


def test_update_profile(service, member):
    user = service.update_profile(member, name="  Mina M.  ", bio="Writes about tea")
    assert user.name == "Mina M."
    assert user.bio == "Writes about tea"
    assert user.avatar is None


def test_set_role(service, admin, member):
    user = service.set_role(admin, member.id, UserRole.AUTHOR)
    assert user.role == UserRole.AUTHOR.value


def test_set_role_guards(db_session, service, admin, author, member):
    with pytest.raises(ForbiddenError):
        service.set_role(author, member.id, UserRole.ADMIN)
    with pytest.raises(ValidationFailedError):
        service.set_role(admin, member.id, UserRole.ANONYMOUS)
    with pytest.raises(NotFoundError):
        service.set_role(admin, 999999, UserRole.AUTHOR)

    sentinel = resolve_anonymous_sentinel(db_session)
    db_session.commit()
    with pytest.raises(ValidationFailedError):
        service.set_role(admin, sentinel.id, UserRole.READER)
