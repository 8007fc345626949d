"""
Login, logout and auth status.

These three endpoints are the only /api routes that do not require an
authenticated session.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from streamvault.auth import SESSION_FLAG, is_authenticated, secrets_match
from streamvault.config import settings
from streamvault.schemas.auth import AuthStatusResponse, LoginRequest, LoginResponse
from streamvault.schemas.base import MessageResponse
from streamvault.services.rate_limit import client_ip, rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit("login"))],
)
async def login(body: LoginRequest, request: Request):
    """Exchange the shared secret for a session cookie."""
    if not secrets_match(body.secret_key, settings.ACCESS_KEY):
        logger.warning("Failed login from %s", client_ip(request))
        return JSONResponse(
            status_code=401,
            content={"success": False, "message": "Invalid secret key"},
        )

    request.session[SESSION_FLAG] = True
    logger.info("Login from %s", client_ip(request))
    return LoginResponse(success=True, message="Login successful")


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request):
    request.session.clear()
    return MessageResponse(message="Logged out successfully")


@router.get("/auth/status", response_model=AuthStatusResponse)
async def auth_status(request: Request):
    # Session only; a bearer token is not a login
    return AuthStatusResponse(authenticated=is_authenticated(request))
