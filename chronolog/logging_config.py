"""Logging setup for chronolog.

Module code logs through ``logging.getLogger(__name__)``. The CLI calls
``setup_chronolog_logging`` once to add a dated file handler under
``$CHRONOLOG_HOME/logs``. ``log_sync`` and ``log_auth`` emit one-line,
grep-friendly records for the events worth auditing.
"""

import logging
from datetime import date
from typing import Optional

from chronolog.utils import get_chronolog_home, mask_secret

LOGGER_NAME = "chronolog"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_chronolog_logging(level: str = "INFO", log_to_file: bool = True) -> logging.Logger:
    """Configure the ``chronolog`` logger.

    Args:
        level: Level name, case-insensitive. Unknown names fall back to INFO.
        log_to_file: Write to ``logs/local-<date>.log`` under the chronolog home.

    Returns:
        The configured ``chronolog`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if log_to_file:
        log_dir = get_chronolog_home() / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"local-{date.today().isoformat()}.log"

        already = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == str(log_file.resolve())
            for h in logger.handlers
        )
        if not already:
            handler = logging.FileHandler(log_file, encoding="utf-8")
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(handler)

    # httpx logs every request at INFO
    if logger.level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    return logger


def log_sync(
    phase: str,
    pushed: int = 0,
    deleted: int = 0,
    pulled: bool = False,
    success: bool = True,
    error: Optional[str] = None,
) -> None:
    """Record one sync phase outcome."""
    logger = logging.getLogger(f"{LOGGER_NAME}.sync")
    status = "OK" if success else "FAILED"
    message = f"SYNC {phase} | {status} | pulled={pulled} pushed={pushed} deleted={deleted}"
    if error:
        message += f" | error={error}"
    logger.log(logging.INFO if success else logging.WARNING, message)


def log_auth(event: str, token: Optional[str] = None, detail: Optional[str] = None) -> None:
    """Record a login/logout event. Tokens are masked."""
    logger = logging.getLogger(f"{LOGGER_NAME}.auth")
    message = f"AUTH {event}"
    if token:
        message += f" | token={mask_secret(token)}"
    if detail:
        message += f" | {detail}"
    logger.info(message)
