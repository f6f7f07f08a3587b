"""Shared helpers for CLI commands."""

import asyncio
import os
import sys
from typing import Optional

from chronolog.api import validate_backend_url
from chronolog.credentials import load_credentials
from chronolog.errors import ValidationError
from chronolog.storage.local import LocalStore
from chronolog.sync.orchestrator import SyncOrchestrator

DEFAULT_BACKEND_URL = "http://localhost:8000"


def resolve_backend_url(explicit: Optional[str] = None) -> str:
    """Backend URL by priority: flag, CHRONOLOG_BACKEND_URL, saved credentials, default."""
    url = explicit or os.environ.get("CHRONOLOG_BACKEND_URL")
    if not url:
        creds = load_credentials()
        url = creds.get("backend_url") if creds else None
    try:
        return validate_backend_url(url or DEFAULT_BACKEND_URL)
    except ValidationError as e:
        print(f"✗ {e}")
        sys.exit(1)


def build_orchestrator(args) -> SyncOrchestrator:
    """Orchestrator for the configured backend and the default local store."""
    backend_url = resolve_backend_url(getattr(args, "backend_url", None))
    token = os.environ.get("CHRONOLOG_AUTH_TOKEN") or None
    return SyncOrchestrator(LocalStore(), backend_url, token=token)


def run_with(args, action):
    """Run ``action(orchestrator)`` to completion and close the client."""

    async def runner():
        async with build_orchestrator(args) as orchestrator:
            return await action(orchestrator)

    return asyncio.run(runner())
