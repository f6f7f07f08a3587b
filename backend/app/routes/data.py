"""Bundle read and write routes."""

import sqlite3

from fastapi import APIRouter, HTTPException, status

from ..database import (
    Database,
    delete_content_types,
    delete_entries,
    delete_media_items,
    get_content_types,
    get_deleted_entry_ids,
    get_entries,
    get_last_modified,
    get_media_items,
    next_last_modified,
    set_last_modified,
    upsert_content_types,
    upsert_entries,
    upsert_media_items,
)
from ..logging_config import get_logger, log_sync_operation
from ..models import CATEGORIES, DataPushRequest, DataPushResponse

logger = get_logger("chronolog.sync")
router = APIRouter(prefix="/api/data", tags=["data"])


@router.get("")
async def get_data(db: Database, since: int | None = None, meta: bool = False):
    """
    Read the bundle.

    - ``meta=true``: only ``lastModified``, for cheap change checks.
    - ``since=<ms>``: entries updated after ``since`` plus ids deleted after it.
    - otherwise: the full bundle.
    """
    last_modified = await get_last_modified(db)
    if meta:
        return {"lastModified": last_modified}

    entries = await get_entries(db, since)
    deleted_ids = await get_deleted_entry_ids(db, since) if since is not None else []

    return {
        "entries": entries,
        "contentTypes": await get_content_types(db),
        "mediaItems": await get_media_items(db),
        "categories": CATEGORIES,
        "lastModified": last_modified,
        "deletedIds": deleted_ids,
        "incremental": since is not None,
    }


@router.api_route("", methods=["POST", "PUT"], response_model=DataPushResponse)
async def push_data(payload: DataPushRequest, db: Database):
    """
    Apply a partial bundle: upsert records, then delete ids.

    Built-in content types are never deleted. Deleted entries leave a
    tombstone so incremental readers learn about them. Every row written
    here carries the new ``lastModified`` as its update time.
    """
    stamp = await next_last_modified(db)
    try:
        with db:
            if payload.entries:
                await upsert_entries(db, [e.to_wire() for e in payload.entries], stamp)
                log_sync_operation("upsert", "entries", len(payload.entries))
            if payload.content_types:
                await upsert_content_types(db, [ct.to_wire() for ct in payload.content_types])
                log_sync_operation("upsert", "content_types", len(payload.content_types))
            if payload.media_items:
                await upsert_media_items(db, [m.to_wire() for m in payload.media_items])
                log_sync_operation("upsert", "media_items", len(payload.media_items))
            if payload.deleted_ids:
                await delete_entries(db, payload.deleted_ids, stamp)
                log_sync_operation("delete", "entries", len(payload.deleted_ids))
            if payload.deleted_content_type_ids:
                await delete_content_types(db, payload.deleted_content_type_ids)
                log_sync_operation("delete", "content_types", len(payload.deleted_content_type_ids))
            if payload.deleted_media_item_ids:
                await delete_media_items(db, payload.deleted_media_item_ids)
                log_sync_operation("delete", "media_items", len(payload.deleted_media_item_ids))
            await set_last_modified(db, stamp)
    except sqlite3.Error as e:
        # Log full error server-side; return a generic message to the client
        logger.error(f"Database error while saving data: {e}")
        log_sync_operation("push", "all", 0, False, str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save data",
        )

    return DataPushResponse(last_modified=stamp)
