from __future__ import annotations

from datetime import datetime
from typing import Any

import bcrypt
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

ALGORITHM = "HS256"
AUDIENCE = "timetrac-clients"
ISSUER = "timetrac"
# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72


class TokenPayload(BaseModel):
    uid: int
    jti: str
    iat: int
    exp: int
    aud: str
    iss: str


def hash_password(password: str, rounds: int = 12) -> str:
    """Return a bcrypt hash string; cost and salt are embedded in it."""
    encoded = password.encode("utf-8")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def encode_access_token(*, account_id: int, token_id: str, issued_at: datetime, expires_at: datetime, secret: str) -> str:
    payload: dict[str, Any] = {
        "uid": account_id,
        "jti": token_id,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        "aud": AUDIENCE,
        "iss": ISSUER,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_access_token(token: str, *, secret: str) -> TokenPayload:
    """Verify signature, audience and issuer and return the typed payload.

    Expiry is not checked here; the caller compares ``exp`` with its own clock.
    """
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            issuer=ISSUER,
            options={"verify_exp": False},
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    try:
        return TokenPayload.model_validate(decoded)
    except ValidationError as exc:
        raise ValueError("Invalid token payload") from exc
