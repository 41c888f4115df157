from __future__ import annotations

from .account import Account
from .interval import WorkInterval
from .token import IssuedToken

__all__ = ["Account", "IssuedToken", "WorkInterval"]
