"""Logging helpers for the Chronolog backend."""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Attach a stderr handler to the ``chronolog`` logger tree (idempotent)."""
    global _configured
    root = logging.getLogger("chronolog")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if _configured:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def mask_token(token: str | None) -> str:
    if not token:
        return "-"
    return f"{token[:4]}...{token[-4:]}" if len(token) > 12 else "***"


def log_auth_event(event: str, token: str | None, success: bool, detail: str | None = None) -> None:
    """Log a login/logout/token check outcome. Tokens are masked."""
    logger = logging.getLogger("chronolog.auth")
    status = "OK" if success else "FAILED"
    message = f"AUTH {event} | {status} | token={mask_token(token)}"
    if detail:
        message += f" | {detail}"
    logger.log(logging.INFO if success else logging.WARNING, message)


def log_sync_operation(
    operation: str,
    table: str,
    count: int,
    success: bool = True,
    error: str | None = None,
) -> None:
    """Log one batch write against a table."""
    logger = logging.getLogger("chronolog.sync")
    status = "OK" if success else "FAILED"
    message = f"SYNC {operation} | {table} | {status} | count={count}"
    if error:
        message += f" | error={error}"
    logger.log(logging.INFO if success else logging.WARNING, message)
