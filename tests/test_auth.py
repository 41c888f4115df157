"""Tests for registration, login, token validation and revocation."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.errors import (
    AlreadyExists,
    AuthenticationFailure,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
)
from app.core.security import encode_access_token
from app.crud.tokens import get_token
from app.db.session import Base, build_engine, build_session_factory
from app.services.auth import Authenticator, Principal
from app.services.timecalc import as_utc

SECRET = "test-secret-with-enough-entropy-0123456789"


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def db_session():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = build_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock():
    return FakeClock(datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture()
def authenticator(clock):
    return Authenticator(secret=SECRET, token_ttl=timedelta(hours=24), bcrypt_rounds=4, clock=clock)


def test_register_then_login_issues_a_valid_token(db_session, authenticator, clock):
    account = authenticator.register(db_session, "a@x.io", "secret1")

    result = authenticator.login(db_session, "a@x.io", "secret1")

    assert result.account.id == account.id
    assert result.expires_at == clock.now + timedelta(hours=24)
    principal = authenticator.validate(db_session, result.token)
    assert principal.account_id == account.id
    ledger_row = get_token(db_session, principal.token_id)
    assert ledger_row is not None
    assert ledger_row.user_id == account.id
    assert ledger_row.revoked_at is None


def test_password_is_stored_as_bcrypt_hash(db_session, authenticator):
    account = authenticator.register(db_session, "a@x.io", "secret1")

    assert account.password_hash != "secret1"
    assert account.password_hash.startswith("$2")


def test_each_login_gets_a_fresh_token_id(db_session, authenticator):
    authenticator.register(db_session, "a@x.io", "secret1")

    first = authenticator.validate(db_session, authenticator.login(db_session, "a@x.io", "secret1").token)
    second = authenticator.validate(db_session, authenticator.login(db_session, "a@x.io", "secret1").token)

    assert first.token_id != second.token_id


def test_hash_cost_change_keeps_existing_accounts_working(db_session, clock):
    cheap = Authenticator(secret=SECRET, token_ttl=timedelta(hours=1), bcrypt_rounds=4, clock=clock)
    cheap.register(db_session, "a@x.io", "secret1")

    costlier = Authenticator(secret=SECRET, token_ttl=timedelta(hours=1), bcrypt_rounds=5, clock=clock)

    assert costlier.login(db_session, "a@x.io", "secret1").token


def test_register_duplicate_email_conflicts(db_session, authenticator):
    authenticator.register(db_session, "a@x.io", "secret1")

    with pytest.raises(AlreadyExists):
        authenticator.register(db_session, "  A@X.io ", "another1")

    # The failed insert must not poison the session.
    assert authenticator.login(db_session, "a@x.io", "secret1").token


@pytest.mark.parametrize(
    "email,password",
    [
        ("", "secret1"),
        ("   ", "secret1"),
        ("a@x.io", "short"),
        ("a@x.io", ""),
        ("a@x.io", "x" * 73),
    ],
)
def test_register_rejects_invalid_input(db_session, authenticator, email, password):
    with pytest.raises(InvalidInput):
        authenticator.register(db_session, email, password)


def test_wrong_password_and_unknown_email_fail_identically(db_session, authenticator):
    authenticator.register(db_session, "a@x.io", "secret1")

    with pytest.raises(InvalidCredentials) as wrong_password:
        authenticator.login(db_session, "a@x.io", "wrong-password")
    with pytest.raises(InvalidCredentials) as unknown_email:
        authenticator.login(db_session, "nobody@x.io", "secret1")

    assert type(wrong_password.value) is type(unknown_email.value)
    assert wrong_password.value.message == unknown_email.value.message
    assert wrong_password.value.code == unknown_email.value.code


def test_logout_revokes_the_token(db_session, authenticator):
    authenticator.register(db_session, "a@x.io", "secret1")
    token = authenticator.login(db_session, "a@x.io", "secret1").token
    principal = authenticator.validate(db_session, token)

    authenticator.logout(db_session, principal.token_id)

    with pytest.raises(InvalidToken):
        authenticator.validate(db_session, token)
    assert get_token(db_session, principal.token_id).revoked_at is not None


def test_logout_twice_keeps_first_revocation_instant(db_session, authenticator, clock):
    authenticator.register(db_session, "a@x.io", "secret1")
    principal = authenticator.validate(db_session, authenticator.login(db_session, "a@x.io", "secret1").token)
    authenticator.logout(db_session, principal.token_id)
    first_revoked_at = get_token(db_session, principal.token_id).revoked_at

    clock.advance(minutes=5)
    authenticator.logout(db_session, principal.token_id)

    db_session.expire_all()
    assert as_utc(get_token(db_session, principal.token_id).revoked_at) == as_utc(first_revoked_at)


def test_logout_without_identifiable_token_is_invalid_input(db_session, authenticator):
    with pytest.raises(InvalidInput):
        authenticator.logout(db_session, "never-issued")
    with pytest.raises(InvalidInput):
        authenticator.logout(db_session, "")


def test_revoking_one_token_leaves_other_sessions_alone(db_session, authenticator):
    authenticator.register(db_session, "a@x.io", "secret1")
    phone = authenticator.login(db_session, "a@x.io", "secret1").token
    laptop = authenticator.login(db_session, "a@x.io", "secret1").token

    authenticator.logout(db_session, authenticator.validate(db_session, phone).token_id)

    assert authenticator.validate(db_session, laptop).account_id
    with pytest.raises(InvalidToken):
        authenticator.validate(db_session, phone)


def test_expired_token_is_rejected_without_revocation(db_session, authenticator, clock):
    authenticator.register(db_session, "a@x.io", "secret1")
    token = authenticator.login(db_session, "a@x.io", "secret1").token

    clock.advance(hours=24)

    with pytest.raises(InvalidToken):
        authenticator.validate(db_session, token)


def test_ledger_expiry_is_checked_even_if_claim_is_still_valid(db_session, authenticator):
    authenticator.register(db_session, "a@x.io", "secret1")
    token = authenticator.login(db_session, "a@x.io", "secret1").token
    principal = authenticator.validate(db_session, token)

    row = get_token(db_session, principal.token_id)
    row.expires_at = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
    db_session.commit()

    with pytest.raises(InvalidToken):
        authenticator.validate(db_session, token)


def test_token_signed_with_another_secret_is_rejected(db_session, authenticator, clock):
    authenticator.register(db_session, "a@x.io", "secret1")
    result = authenticator.login(db_session, "a@x.io", "secret1")
    principal = authenticator.validate(db_session, result.token)

    forged = encode_access_token(
        account_id=principal.account_id,
        token_id=principal.token_id,
        issued_at=clock.now,
        expires_at=result.expires_at,
        secret="some-other-secret",
    )

    with pytest.raises(InvalidToken):
        authenticator.validate(db_session, forged)


def test_tampered_token_is_rejected(db_session, authenticator):
    authenticator.register(db_session, "a@x.io", "secret1")
    token = authenticator.login(db_session, "a@x.io", "secret1").token
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload[:-2] + ("AA" if payload[-2:] != "AA" else "BB"), signature])

    with pytest.raises(InvalidToken):
        authenticator.validate(db_session, tampered)


def test_token_id_must_belong_to_claimed_account(db_session, authenticator, clock):
    authenticator.register(db_session, "a@x.io", "secret1")
    other = authenticator.register(db_session, "b@x.io", "secret2")
    result = authenticator.login(db_session, "a@x.io", "secret1")
    principal = authenticator.validate(db_session, result.token)

    # Correctly signed, but pairs account b with account a's ledger entry.
    borrowed = encode_access_token(
        account_id=other.id,
        token_id=principal.token_id,
        issued_at=clock.now,
        expires_at=result.expires_at,
        secret=SECRET,
    )

    with pytest.raises(InvalidToken):
        authenticator.validate(db_session, borrowed)


def test_unknown_token_id_is_rejected(db_session, authenticator, clock):
    account = authenticator.register(db_session, "a@x.io", "secret1")
    unrecorded = encode_access_token(
        account_id=account.id,
        token_id="not-in-ledger",
        issued_at=clock.now,
        expires_at=clock.now + timedelta(hours=1),
        secret=SECRET,
    )

    with pytest.raises(InvalidToken):
        authenticator.validate(db_session, unrecorded)


def test_garbage_token_is_an_authentication_failure(db_session, authenticator):
    with pytest.raises(AuthenticationFailure):
        authenticator.validate(db_session, "not-a-jwt")


def test_current_account_returns_the_principal_account(db_session, authenticator):
    account = authenticator.register(db_session, "a@x.io", "secret1")
    principal = authenticator.validate(db_session, authenticator.login(db_session, "a@x.io", "secret1").token)

    assert authenticator.current_account(db_session, principal).email == "a@x.io"
    assert principal == Principal(account_id=account.id, token_id=principal.token_id)


def test_authenticator_requires_a_secret():
    with pytest.raises(ValueError):
        Authenticator(secret="", token_ttl=timedelta(hours=1))
