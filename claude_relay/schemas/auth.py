from __future__ import annotations

from pydantic import BaseModel


class AuthStatusResponse(BaseModel):
    installed: bool
    authenticated: bool
    detail: str


class LoginUrlResponse(BaseModel):
    url: str | None = None
    instructions: str


__all__ = ["AuthStatusResponse", "LoginUrlResponse"]
