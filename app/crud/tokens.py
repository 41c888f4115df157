"""Token ledger: one row per issued access token."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..models.token import IssuedToken


def record_token(db: Session, *, jti: str, account_id: int, expires_at: datetime) -> IssuedToken:
    token = IssuedToken(jti=jti, user_id=account_id, expires_at=expires_at)
    db.add(token)
    db.commit()
    return token


def get_token(db: Session, jti: str) -> IssuedToken | None:
    return db.get(IssuedToken, jti)


def get_active_token(db: Session, *, jti: str, account_id: int, now: datetime) -> IssuedToken | None:
    """Return the ledger row only if it belongs to ``account_id`` and is usable at ``now``."""
    stmt = select(IssuedToken).where(
        IssuedToken.jti == jti,
        IssuedToken.user_id == account_id,
        IssuedToken.expires_at > now,
        IssuedToken.revoked_at.is_(None),
    )
    return db.execute(stmt).scalars().first()


def revoke_token(db: Session, jti: str, *, now: datetime) -> bool:
    """Mark ``jti`` revoked. Returns False when the ledger has no such token.

    An already revoked token keeps its first revocation instant.
    """
    db.execute(
        update(IssuedToken)
        .where(IssuedToken.jti == jti, IssuedToken.revoked_at.is_(None))
        .values(revoked_at=now)
    )
    db.commit()
    exists = db.execute(select(IssuedToken.jti).where(IssuedToken.jti == jti)).first()
    return exists is not None
