from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CredentialsRequest(BaseModel):
    # Emptiness and password policy are checked by the Authenticator so that
    # they surface as invalid_input rather than schema errors.
    email: str = ""
    password: str = ""

    model_config = {
        "json_schema_extra": {
            "example": {"email": "demo@demo.io", "password": "demo123"}
        }
    }


class AccountOut(BaseModel):
    id: int
    email: str

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    token: str
    user: AccountOut
    exp: datetime

    model_config = {
        "json_schema_extra": {
            "example": {
                "token": "<jwt>",
                "user": {"id": 1, "email": "demo@demo.io"},
                "exp": "2024-05-02T09:00:00Z",
            }
        }
    }


class MessageResponse(BaseModel):
    message: str
