"""Auth gateway for the Chronolog backend.

Every request passes through ``auth_gateway`` before routing:

* ``OPTIONS`` is answered with the CORS preflight headers and never routed.
* Public paths (login, image reads, the public entries feed, comment
  write-back and ``GET /api/data``) pass without a bearer check. The last
  two carry their own secrets, checked by their routes.
* Any other ``/api/*`` request needs ``Authorization: Bearer <token>``
  naming a token present in the key-value store.

Tokens are opaque capability strings. Possession of one that is still in
the store is the whole authorization; there is no user identity.
"""

import re
import secrets
import sqlite3
import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from .config import Settings, get_settings
from .database import get_connection, kv_delete, kv_get, kv_put, now_ms
from .logging_config import get_logger, log_auth_event

logger = get_logger("chronolog.auth")

TOKEN_KEY_PREFIX = "auth_token:"
TOKEN_VALUE = "valid"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}

_COMMENT_PATH = re.compile(r"^/api/entries/[^/]+/comment$")


def is_public_path(method: str, path: str) -> bool:
    """True when ``method path`` skips the bearer check."""
    if path == "/api/auth":
        return True
    if path.startswith("/api/image/"):
        return True
    if path == "/api/entries/public":
        return True
    if _COMMENT_PATH.match(path):
        return True
    if path == "/api/data" and method == "GET":
        return True
    return False


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


def generate_token() -> str:
    """Opaque token: random uuid plus the mint time in epoch ms."""
    return f"{uuid.uuid4()}-{now_ms()}"


def check_password(candidate: str, settings: Settings) -> bool:
    if not settings.auth_password:
        return False
    return secrets.compare_digest(candidate.encode(), settings.auth_password.encode())


async def mint_token(db: sqlite3.Connection, settings: Settings) -> tuple[str, int]:
    """Store a fresh token. Returns ``(token, expires_at_ms)``."""
    token = generate_token()
    ttl_seconds = settings.token_ttl_days * 24 * 60 * 60
    await kv_put(db, TOKEN_KEY_PREFIX + token, TOKEN_VALUE, ttl_seconds)
    return token, now_ms() + ttl_seconds * 1000


async def token_is_valid(db: sqlite3.Connection, token: str) -> bool:
    return await kv_get(db, TOKEN_KEY_PREFIX + token) is not None


async def revoke_token(db: sqlite3.Connection, token: str) -> bool:
    """Delete one token. Other devices' tokens are untouched."""
    return await kv_delete(db, TOKEN_KEY_PREFIX + token)


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": message},
        headers={"Access-Control-Allow-Origin": "*"},
    )


async def auth_gateway(request: Request, call_next) -> Response:
    """HTTP middleware enforcing bearer auth on protected API routes."""
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)

    path = request.url.path
    if path.startswith("/api/") and not is_public_path(request.method, path):
        token = bearer_token(request.headers.get("authorization"))
        if token is None:
            return _unauthorized("Unauthorized")

        db = get_connection(get_settings())
        if not await token_is_valid(db, token):
            log_auth_event("token_check", token, False, f"{request.method} {path}")
            return _unauthorized("Invalid token")
        request.state.token = token

    response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


def get_current_token(request: Request) -> str:
    """The bearer token the gateway accepted for this request."""
    token = getattr(request.state, "token", None)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return token


# Type alias for dependency injection
CurrentToken = Annotated[str, Depends(get_current_token)]
