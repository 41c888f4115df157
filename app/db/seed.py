"""Optional demo account created at startup."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session, sessionmaker

from ..core.errors import AlreadyExists
from ..crud.accounts import get_account_by_email, normalize_email
from ..services.auth import Authenticator

logger = logging.getLogger(__name__)


def ensure_demo_account(session_factory: sessionmaker[Session], authenticator: Authenticator, email: str, password: str) -> bool:
    """Register the demo account unless it exists. Returns True when created."""

    with session_factory() as db:
        if get_account_by_email(db, normalize_email(email)) is not None:
            return False
        try:
            authenticator.register(db, email, password)
        except AlreadyExists:
            # Another worker seeded it between the lookup and the insert.
            return False
    logger.info("db.demo_account_created", extra={"extra_data": {"email": normalize_email(email)}})
    return True
