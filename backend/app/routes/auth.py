"""Authentication routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..auth import CurrentToken, check_password, mint_token, revoke_token
from ..config import Settings, get_settings
from ..database import Database
from ..logging_config import get_logger, log_auth_event
from ..models import LoginRequest, LoginResponse, SuccessResponse
from ..rate_limit import limiter, login_rate_limit

logger = get_logger("chronolog.auth")
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("", response_model=LoginResponse)
@limiter.limit(login_rate_limit)
async def login(
    request: Request,
    login_request: LoginRequest,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Exchange the shared password for a new device token.

    Every successful call mints an independent token, so each device can
    log out without affecting the others.
    """
    if not settings.auth_password:
        logger.error("Login attempted but AUTH_PASSWORD is not set")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server not configured",
        )

    if not check_password(login_request.password, settings):
        log_auth_event("login", None, False, "invalid password")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
        )

    token, expires_at = await mint_token(db, settings)
    log_auth_event("login", token, True)
    return LoginResponse(token=token, expires_at=expires_at)


@router.post("/logout", response_model=SuccessResponse)
async def logout(token: CurrentToken, db: Database):
    """Revoke the presented token only."""
    await revoke_token(db, token)
    log_auth_event("logout", token, True)
    return SuccessResponse()
