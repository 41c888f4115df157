from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, Text, func

from ..db.session import Base


class Account(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(Text, nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
