"""
Admin Login API

Admin login is enabled when both ADMIN_USERNAME and ADMIN_PASSWORD are set:
- POST /auth/login: exchange username and password for a token
- GET /auth/status: whether auth is enabled and the caller is logged in
"""

import hmac

from fastapi import APIRouter, Header, HTTPException, status
from pydantic import BaseModel, Field

from ollama_gateway.api.deps import _extract_bearer_token, get_admin_signer
from ollama_gateway.config import get_settings

router = APIRouter(prefix="/auth", tags=["Auth"])


class AuthStatusResponse(BaseModel):
    enabled: bool
    authenticated: bool


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    expires_at: int


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(
    authorization: str = Header(None, description="Bearer token"),
    x_admin_token: str = Header(None, description="Admin token", alias="x-admin-token"),
):
    signer = get_admin_signer()
    if signer is None:
        return AuthStatusResponse(enabled=False, authenticated=True)

    token = x_admin_token or _extract_bearer_token(authorization)
    return AuthStatusResponse(enabled=True, authenticated=bool(token and signer.verify(token)))


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest):
    signer = get_admin_signer()
    if signer is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admin authentication is not enabled",
        )

    settings = get_settings()
    username_ok = hmac.compare_digest(
        data.username.encode("utf-8"), (settings.ADMIN_USERNAME or "").encode("utf-8")
    )
    password_ok = hmac.compare_digest(
        data.password.encode("utf-8"), (settings.ADMIN_PASSWORD or "").encode("utf-8")
    )
    if not (username_ok and password_ok):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token, expires_at = signer.issue()
    return LoginResponse(
        access_token=token,
        expires_in=signer.ttl_seconds,
        expires_at=expires_at,
    )
