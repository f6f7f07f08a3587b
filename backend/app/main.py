"""Chronolog Backend API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException

from .auth import auth_gateway
from .config import get_settings
from .database import check_health, get_connection
from .logging_config import configure_logging, get_logger
from .rate_limit import limiter
from .routes import auth_router, data_router, entries_router, images_router, migrate_router

logger = get_logger("chronolog.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    configure_logging(settings.log_level)
    get_connection(settings)
    logger.info(f"Starting Chronolog Backend API (debug={settings.debug})")
    if not settings.auth_password:
        logger.warning("AUTH_PASSWORD is not set; logins will fail")
    yield
    logger.info("Shutting down Chronolog Backend API")


app = FastAPI(
    title="Chronolog Backend API",
    description="Sync backend for the Chronolog timeline journal",
    version="0.3.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Auth gateway (also answers CORS preflight)
app.middleware("http")(auth_gateway)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.debug(f"Rejected request body for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid data format"},
    )


# Served outside the gateway, so the CORS header is set here
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Log full error server-side; never leak internals to the client
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
        headers={"Access-Control-Allow-Origin": "*"},
    )


# Include routers
app.include_router(auth_router)
app.include_router(data_router)
app.include_router(entries_router)
app.include_router(images_router)
app.include_router(migrate_router)


@app.get("/")
async def root():
    return {
        "service": "chronolog-backend",
        "version": "0.3.0",
        "status": "ok",
    }


@app.get("/health")
async def health():
    """Health check with an actual database query."""
    db_status = await check_health(get_connection())
    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
    }
