"""Small shared helpers for chronolog."""

import os
import time
from pathlib import Path


def get_chronolog_home() -> Path:
    """Directory holding credentials, local data and logs.

    ``CHRONOLOG_HOME`` overrides the default ``~/.chronolog``.
    """
    override = os.environ.get("CHRONOLOG_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".chronolog"


def now_ms() -> int:
    """Current time as epoch milliseconds (the unit used on the wire)."""
    return int(time.time() * 1000)


def mask_secret(secret: str, prefix: int = 4, suffix: int = 4) -> str:
    """Mask a secret for safe display (never returns the full secret)."""
    if not secret:
        return ""

    if len(secret) <= prefix + suffix:
        if len(secret) <= 2:
            return "*" * len(secret)
        visible = max(1, len(secret) // 3)
        return f"{secret[:visible]}...{secret[-visible:]}"

    return f"{secret[:prefix]}...{secret[-suffix:]}"
