"""One-off import of the legacy key-value bundle into the tables."""

import json

from fastapi import APIRouter, HTTPException, status

from ..database import (
    Database,
    kv_get,
    touch_last_modified,
    upsert_content_types,
    upsert_entries,
    upsert_media_items,
)
from ..logging_config import get_logger
from ..models import ContentTypeIn, EntryIn, MediaItemIn

logger = get_logger("chronolog.migrate")
router = APIRouter(prefix="/api/migrate", tags=["migrate"])

LEGACY_DATA_KEY = "user_data"
LEGACY_PROMOTED_CATEGORIES = ("beans", "sparks")


def promote_legacy_category(entry: dict) -> dict:
    """Move a legacy beans/sparks category into ``contentType``."""
    category = entry.get("category")
    if category in LEGACY_PROMOTED_CATEGORIES and not entry.get("contentType"):
        entry = {**entry, "contentType": category}
        entry.pop("category", None)
    return entry


@router.post("")
async def migrate_legacy(db: Database):
    """Copy the legacy ``user_data`` bundle into the relational tables."""
    raw = await kv_get(db, LEGACY_DATA_KEY)
    if raw is None:
        return {
            "success": True,
            "message": "No legacy data found, nothing to migrate",
            "entriesCount": 0,
            "contentTypesCount": 0,
            "mediaItemsCount": 0,
        }

    try:
        data = json.loads(raw)
        entries = [
            EntryIn.model_validate(promote_legacy_category(e)).to_wire()
            for e in data.get("entries") or []
        ]
        content_types = [
            ContentTypeIn.model_validate(ct).to_wire() for ct in data.get("contentTypes") or []
        ]
        media_items = [
            MediaItemIn.model_validate(m).to_wire() for m in data.get("mediaItems") or []
        ]
    except (ValueError, AttributeError) as e:
        logger.error(f"Legacy data is malformed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Legacy data is malformed",
        )

    logger.info(
        f"MIGRATE | {len(entries)} entries, {len(content_types)} content types, "
        f"{len(media_items)} media items"
    )
    with db:
        await upsert_entries(db, entries)
        await upsert_content_types(db, content_types)
        await upsert_media_items(db, media_items)
        last_modified = await touch_last_modified(db)

    return {
        "success": True,
        "message": "Migration complete",
        "entriesCount": len(entries),
        "contentTypesCount": len(content_types),
        "mediaItemsCount": len(media_items),
        "lastModified": last_modified,
    }
