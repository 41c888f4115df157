from __future__ import annotations

from .auth import get_authenticator, get_tracker, require_principal

__all__ = ["get_authenticator", "get_tracker", "require_principal"]
