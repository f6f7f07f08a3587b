"""Device credential persistence (``$CHRONOLOG_HOME/credentials.json``)."""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from chronolog.utils import get_chronolog_home, now_ms


def get_credentials_path() -> Path:
    """Get the path to the credentials file."""
    return get_chronolog_home() / "credentials.json"


def load_credentials(path: Optional[Path] = None) -> Optional[Dict[str, Any]]:
    """Load credentials, or None if missing or unreadable."""
    creds_path = path or get_credentials_path()
    if not creds_path.exists():
        return None
    try:
        with open(creds_path) as f:
            creds = json.load(f)
    except (json.JSONDecodeError, IOError):
        return None
    return creds if isinstance(creds, dict) else None


def save_credentials(credentials: Dict[str, Any], path: Optional[Path] = None) -> None:
    """Save credentials with owner-only permissions."""
    creds_path = path or get_credentials_path()
    creds_path.parent.mkdir(parents=True, exist_ok=True)
    with open(creds_path, "w") as f:
        json.dump(credentials, f, indent=2)
    creds_path.chmod(0o600)


def clear_credentials(path: Optional[Path] = None) -> bool:
    """Remove the credentials file. Returns True if one existed."""
    creds_path = path or get_credentials_path()
    if creds_path.exists():
        creds_path.unlink()
        return True
    return False


def token_is_current(credentials: Optional[Dict[str, Any]]) -> bool:
    """True when credentials hold a token that has not expired."""
    if not credentials or not credentials.get("auth_token"):
        return False
    expires = credentials.get("token_expires")
    return expires is None or int(expires) > now_ms()
