"""Public read feed and comment write-back for entries.

Both routes skip the bearer gateway and check their own static secret.
"""

import secrets
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status

from ..auth import bearer_token
from ..config import Settings, get_settings
from ..database import (
    Database,
    get_content_types,
    get_entries_between,
    get_last_modified,
    get_media_items,
    next_last_modified,
    set_ai_comment,
    set_last_modified,
)
from ..logging_config import get_logger
from ..models import CommentRequest, SuccessResponse

logger = get_logger("chronolog.entries")
router = APIRouter(prefix="/api/entries", tags=["entries"])

DEFAULT_PUBLIC_LIMIT = 100
MAX_PUBLIC_LIMIT = 1000


def _secret_matches(candidate: str | None, expected: str) -> bool:
    return bool(candidate) and secrets.compare_digest(candidate.encode(), expected.encode())


def parse_date_bound(value: str | None) -> int | None:
    """ISO date or datetime to epoch ms. Naive values are UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid date: {value}",
        )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


@router.get("/public")
async def public_entries(
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
    token: str | None = None,
    start: str | None = None,
    end: str | None = None,
    limit: int = DEFAULT_PUBLIC_LIMIT,
):
    """Read-only feed for external consumers holding the public token."""
    if not settings.public_api_token:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Public API not configured",
        )
    if not _secret_matches(token, settings.public_api_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing token",
        )

    limit = max(1, min(limit, MAX_PUBLIC_LIMIT))
    entries = await get_entries_between(db, parse_date_bound(start), parse_date_bound(end), limit)

    return {
        "entries": entries,
        "mediaItems": await get_media_items(db),
        "contentTypes": await get_content_types(db),
        "lastModified": await get_last_modified(db),
        "count": len(entries),
    }


@router.post("/{entry_id}/comment", response_model=SuccessResponse)
async def add_comment(
    entry_id: str,
    comment_request: CommentRequest,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[str | None, Header()] = None,
):
    """Attach a comment to an entry (used by an external automation)."""
    if not settings.webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Webhook not configured",
        )
    if not _secret_matches(bearer_token(authorization), settings.webhook_secret):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    comment = comment_request.comment.strip()
    if not comment:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Comment is required")

    stamp = await next_last_modified(db)
    with db:
        if not await set_ai_comment(db, entry_id, comment, stamp):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry not found")
        await set_last_modified(db, stamp)

    logger.info(f"Comment added to entry {entry_id}")
    return SuccessResponse()
