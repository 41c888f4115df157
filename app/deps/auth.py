from __future__ import annotations

from fastapi import Depends, Header, Request
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..core.errors import AuthenticationFailure
from ..db.session import get_db
from ..middlewares import principal_ctx_var
from ..services.auth import Authenticator, Principal
from ..services.tracker import SessionTracker


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def get_tracker(request: Request) -> SessionTracker:
    return request.app.state.tracker


def _set_principal(request: Request, principal: Principal) -> None:
    principal_ctx_var.set(principal.account_id)
    request.state.principal = principal


async def require_principal(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
    authenticator: Authenticator = Depends(get_authenticator),
) -> Principal:
    """Gate for protected routes: a live bearer token or 401.

    Validation hits the ledger, so it runs off the event loop. The principal
    is set from the request's own context so handler logs carry it.
    """

    scheme, credentials = get_authorization_scheme_param(authorization)
    if not authorization or scheme.lower() != "bearer" or not credentials:
        raise AuthenticationFailure("Authorization required")
    principal = await run_in_threadpool(authenticator.validate, db, credentials)
    _set_principal(request, principal)
    return principal
