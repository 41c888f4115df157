"""Credential store: accounts keyed by unique email."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import AlreadyExists
from ..models.account import Account


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def create_account(db: Session, email: str, password_hash: str) -> Account:
    account = Account(email=email, password_hash=password_hash)
    db.add(account)
    try:
        db.commit()
    except IntegrityError as exc:
        # The unique constraint on email decides; no racy pre-check.
        db.rollback()
        raise AlreadyExists() from exc
    db.refresh(account)
    return account


def get_account(db: Session, account_id: int) -> Account | None:
    return db.get(Account, account_id)


def get_account_by_email(db: Session, email: str) -> Account | None:
    return db.execute(select(Account).where(Account.email == email)).scalars().first()
