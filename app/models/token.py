from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from ..db.session import Base


class IssuedToken(Base):
    """Ledger row for one access token; a token is usable while unexpired and unrevoked."""

    __tablename__ = "auth_tokens"

    jti = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
