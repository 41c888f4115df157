"""Account registration, token issuance, validation and revocation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, NoReturn
from uuid import uuid4

from jose import JWTError
from sqlalchemy.orm import Session

from ..core.errors import InternalFault, InvalidCredentials, InvalidInput, InvalidToken
from ..core.security import BCRYPT_MAX_BYTES, decode_access_token, encode_access_token, hash_password, verify_password
from ..crud.accounts import create_account, get_account, get_account_by_email, normalize_email
from ..crud.tokens import get_active_token, record_token, revoke_token
from ..models.account import Account
from .timecalc import as_utc, utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class Principal:
    """Authenticated identity for the duration of one request."""

    account_id: int
    token_id: str


@dataclass(frozen=True)
class LoginResult:
    token: str
    account: Account
    expires_at: datetime


class Authenticator:
    """Credential checks and the token lifecycle.

    Every validation goes back to the ledger; nothing about tokens or
    credentials is cached in process.
    """

    def __init__(
        self,
        *,
        secret: str,
        token_ttl: timedelta,
        bcrypt_rounds: int = 12,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not secret:
            raise ValueError("JWT_SECRET must be set")
        self._secret = secret
        self._token_ttl = token_ttl
        self._bcrypt_rounds = bcrypt_rounds
        self._clock = clock
        self._dummy_hash: str | None = None

    def _now(self) -> datetime:
        return as_utc(self._clock())

    def register(self, db: Session, email: str, password: str) -> Account:
        email = normalize_email(email)
        password = password or ""
        if not email:
            raise InvalidInput("email is required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise InvalidInput(f"password must be at most {BCRYPT_MAX_BYTES} bytes")
        password_hash = hash_password(password, rounds=self._bcrypt_rounds)
        account = create_account(db, email, password_hash)
        logger.info("auth.registered", extra={"extra_data": {"account_id": account.id}})
        return account

    def login(self, db: Session, email: str, password: str) -> LoginResult:
        account = get_account_by_email(db, normalize_email(email))
        if account is None:
            # Spend the same bcrypt time as a real check so timing does not leak existence.
            verify_password(password or "", self._get_dummy_hash())
            logger.info("auth.login_failed", extra={"extra_data": {"reason": "unknown_email"}})
            raise InvalidCredentials()
        if not verify_password(password or "", account.password_hash):
            logger.info(
                "auth.login_failed",
                extra={"extra_data": {"reason": "bad_password", "account_id": account.id}},
            )
            raise InvalidCredentials()

        issued_at = self._now()
        expires_at = issued_at + self._token_ttl
        token_id = str(uuid4())
        try:
            token = encode_access_token(
                account_id=account.id,
                token_id=token_id,
                issued_at=issued_at,
                expires_at=expires_at,
                secret=self._secret,
            )
        except JWTError as exc:
            logger.error("auth.signing_failed", exc_info=exc)
            raise InternalFault() from exc
        record_token(db, jti=token_id, account_id=account.id, expires_at=expires_at)
        logger.info("auth.login", extra={"extra_data": {"account_id": account.id, "jti": token_id}})
        return LoginResult(token=token, account=account, expires_at=expires_at)

    def validate(self, db: Session, token: str) -> Principal:
        try:
            payload = decode_access_token(token, secret=self._secret)
        except ValueError as exc:
            self._reject(str(exc))
        now = self._now()
        # Signature-internal expiry rejects before touching storage.
        if payload.exp <= int(now.timestamp()):
            self._reject("expired_claim", payload.jti)
        record = get_active_token(db, jti=payload.jti, account_id=payload.uid, now=now)
        if record is None:
            self._reject("not_in_ledger_or_revoked", payload.jti)
        return Principal(account_id=payload.uid, token_id=payload.jti)

    def logout(self, db: Session, token_id: str) -> None:
        # Behind require_principal this needs the ledger row to vanish mid-request.
        if not token_id or not revoke_token(db, token_id, now=self._now()):
            raise InvalidInput("no identifiable token")
        logger.info("auth.logout", extra={"extra_data": {"jti": token_id}})

    def current_account(self, db: Session, principal: Principal) -> Account:
        account = get_account(db, principal.account_id)
        if account is None:
            self._reject("account_missing", principal.token_id)
        return account

    def _reject(self, reason: str, token_id: str | None = None) -> NoReturn:
        extra = {"reason": reason}
        if token_id:
            extra["jti"] = token_id
        logger.info("auth.token_rejected", extra={"extra_data": extra})
        raise InvalidToken()

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = hash_password(uuid4().hex, rounds=self._bcrypt_rounds)
        return self._dummy_hash
