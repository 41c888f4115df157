from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import get_authenticator, require_principal
from ..schemas.auth import AccountOut, CredentialsRequest, LoginResponse, MessageResponse
from ..services.auth import Authenticator, Principal

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED, summary="Create an account")
def register(
    payload: CredentialsRequest,
    db: Session = Depends(get_db),
    authenticator: Authenticator = Depends(get_authenticator),
):
    authenticator.register(db, payload.email, payload.password)
    return MessageResponse(message="registered")


@router.post("/login", response_model=LoginResponse, summary="Exchange credentials for a bearer token")
def login(
    payload: CredentialsRequest,
    db: Session = Depends(get_db),
    authenticator: Authenticator = Depends(get_authenticator),
):
    result = authenticator.login(db, payload.email, payload.password)
    return LoginResponse(
        token=result.token,
        user=AccountOut.model_validate(result.account),
        exp=result.expires_at,
    )


@router.post("/logout", response_model=MessageResponse, summary="Revoke the presented token")
def logout(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
    authenticator: Authenticator = Depends(get_authenticator),
):
    authenticator.logout(db, principal.token_id)
    return MessageResponse(message="logged out")


@router.get("/me", response_model=AccountOut, summary="Current account")
def me(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
    authenticator: Authenticator = Depends(get_authenticator),
):
    return AccountOut.model_validate(authenticator.current_account(db, principal))
