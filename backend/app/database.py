"""Relational and key-value storage on SQLite.

One database file holds the synced tables (entries, content types, media
items), the sync bookkeeping (``sync_meta``, ``deleted_entries``) and the
``kv`` table used for tokens and legacy bundles. Rows are converted to and
from the camelCase wire dicts here, so routes never see column names.
"""

import json
import sqlite3
import threading
import time
from pathlib import Path
from typing import Annotated, Any

from fastapi import Depends

from .config import Settings, get_settings

_connection: sqlite3.Connection | None = None
_lock = threading.Lock()


SCHEMA = """
CREATE TABLE IF NOT EXISTS entries (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    timestamp INTEGER NOT NULL,
    session_id TEXT,
    duration INTEGER,
    category TEXT,
    content_type TEXT NOT NULL DEFAULT 'note',
    field_values TEXT,
    linked_entries TEXT,
    tags TEXT,
    ai_comment TEXT,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_entries_timestamp ON entries(timestamp);
CREATE INDEX IF NOT EXISTS idx_entries_updated_at ON entries(updated_at);

CREATE TABLE IF NOT EXISTS content_types (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    icon TEXT,
    color TEXT,
    fields TEXT NOT NULL DEFAULT '[]',
    built_in INTEGER NOT NULL DEFAULT 0,
    sort_order INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS media_items (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    media_type TEXT NOT NULL,
    notion_url TEXT,
    cover_url TEXT,
    created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS deleted_entries (
    id TEXT PRIMARY KEY,
    deleted_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS sync_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    expires_at INTEGER
);
"""


def now_ms() -> int:
    return int(time.time() * 1000)


def get_connection(settings: Settings | None = None) -> sqlite3.Connection:
    """Get the cached connection, creating the schema on first use."""
    global _connection
    with _lock:
        if _connection is None:
            if settings is None:
                settings = get_settings()
            path = settings.database_path
            if path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.executescript(SCHEMA)
            _connection = conn
        return _connection


def reset_connection() -> None:
    """Close and forget the cached connection (tests, settings changes)."""
    global _connection
    with _lock:
        if _connection is not None:
            _connection.close()
        _connection = None


def get_db(settings: Annotated[Settings, Depends(get_settings)]) -> sqlite3.Connection:
    """FastAPI dependency for the database connection."""
    return get_connection(settings)


# Type alias for dependency injection
Database = Annotated[sqlite3.Connection, Depends(get_db)]


# =============================================================================
# Row mapping
# =============================================================================

def _loads(value: str | None, default: Any) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except ValueError:
        return default


def entry_row_to_dict(row: sqlite3.Row) -> dict:
    entry: dict[str, Any] = {
        "id": row["id"],
        "type": row["type"],
        "content": row["content"],
        "timestamp": row["timestamp"],
    }
    if row["session_id"]:
        entry["sessionId"] = row["session_id"]
    if row["duration"] is not None:
        entry["duration"] = row["duration"]
    if row["category"]:
        entry["category"] = row["category"]
    # 'note' is the column default for entries without a content type
    if row["content_type"] and row["content_type"] != "note":
        entry["contentType"] = row["content_type"]
    if row["ai_comment"]:
        entry["aiComment"] = row["ai_comment"]

    field_values = _loads(row["field_values"], None)
    if isinstance(field_values, dict):
        entry["fieldValues"] = field_values
    for column, key in (("linked_entries", "linkedEntries"), ("tags", "tags")):
        values = _loads(row[column], [])
        if isinstance(values, list) and values:
            entry[key] = values
    return entry


def content_type_row_to_dict(row: sqlite3.Row) -> dict:
    ct: dict[str, Any] = {
        "id": row["id"],
        "name": row["name"],
        "fields": _loads(row["fields"], []),
        "order": row["sort_order"] or 0,
    }
    if row["icon"]:
        ct["icon"] = row["icon"]
    if row["color"]:
        ct["color"] = row["color"]
    if row["built_in"]:
        ct["builtIn"] = True
    return ct


def media_item_row_to_dict(row: sqlite3.Row) -> dict:
    item: dict[str, Any] = {
        "id": row["id"],
        "title": row["title"],
        "mediaType": row["media_type"],
        "createdAt": row["created_at"],
    }
    if row["notion_url"]:
        item["notionUrl"] = row["notion_url"]
    if row["cover_url"]:
        item["coverUrl"] = row["cover_url"]
    return item


def _dumps_or_none(value: Any) -> str | None:
    return json.dumps(value) if value is not None else None


# =============================================================================
# Entries
# =============================================================================
#
# Table writers do not commit. Callers group them in one `with db:` block so a
# push, migration or comment lands together with its lastModified bump.

async def upsert_entries(db: sqlite3.Connection, entries: list[dict], stamp: int | None = None) -> int:
    """Insert or update entries; re-upserting a deleted id clears its tombstone."""
    if not entries:
        return 0
    now = stamp or now_ms()
    rows = [
        (
            e["id"], e["type"], e.get("content") or "", e["timestamp"],
            e.get("sessionId"), e.get("duration"), e.get("category"),
            e.get("contentType") or "note",
            _dumps_or_none(e.get("fieldValues")),
            _dumps_or_none(e.get("linkedEntries")),
            _dumps_or_none(e.get("tags")),
            e.get("aiComment"), now, now,
        )
        for e in entries
    ]
    db.executemany(
        """
        INSERT INTO entries
          (id, type, content, timestamp, session_id, duration, category, content_type,
           field_values, linked_entries, tags, ai_comment, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
          type = excluded.type,
          content = excluded.content,
          timestamp = excluded.timestamp,
          session_id = excluded.session_id,
          duration = excluded.duration,
          category = excluded.category,
          content_type = excluded.content_type,
          field_values = excluded.field_values,
          linked_entries = excluded.linked_entries,
          tags = excluded.tags,
          ai_comment = COALESCE(excluded.ai_comment, entries.ai_comment),
          updated_at = excluded.updated_at
        """,
        rows,
    )
    db.executemany("DELETE FROM deleted_entries WHERE id = ?", [(e["id"],) for e in entries])
    return len(rows)


async def delete_entries(db: sqlite3.Connection, ids: list[str], stamp: int | None = None) -> int:
    """Delete entries and record tombstones for incremental readers."""
    if not ids:
        return 0
    now = stamp or now_ms()
    cursor = db.executemany("DELETE FROM entries WHERE id = ?", [(i,) for i in ids])
    db.executemany(
        "INSERT OR REPLACE INTO deleted_entries (id, deleted_at) VALUES (?, ?)",
        [(i, now) for i in ids],
    )
    return cursor.rowcount


async def get_entries(db: sqlite3.Connection, since: int | None = None) -> list[dict]:
    """All entries by timestamp, or only those updated after ``since``."""
    if since is None:
        rows = db.execute("SELECT * FROM entries ORDER BY timestamp ASC").fetchall()
    else:
        rows = db.execute(
            "SELECT * FROM entries WHERE updated_at > ? ORDER BY timestamp ASC", (since,)
        ).fetchall()
    return [entry_row_to_dict(r) for r in rows]


async def get_entries_between(
    db: sqlite3.Connection,
    start: int | None,
    end: int | None,
    limit: int,
) -> list[dict]:
    """Entries in ``[start, end]`` (epoch ms), newest first."""
    clauses, params = [], []
    if start is not None:
        clauses.append("timestamp >= ?")
        params.append(start)
    if end is not None:
        clauses.append("timestamp <= ?")
        params.append(end)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = db.execute(
        f"SELECT * FROM entries {where} ORDER BY timestamp DESC LIMIT ?", (*params, limit)
    ).fetchall()
    return [entry_row_to_dict(r) for r in rows]


async def get_deleted_entry_ids(db: sqlite3.Connection, since: int) -> list[str]:
    rows = db.execute("SELECT id FROM deleted_entries WHERE deleted_at > ?", (since,)).fetchall()
    return [r["id"] for r in rows]


async def entry_exists(db: sqlite3.Connection, entry_id: str) -> bool:
    return db.execute("SELECT 1 FROM entries WHERE id = ?", (entry_id,)).fetchone() is not None


async def set_ai_comment(db: sqlite3.Connection, entry_id: str, comment: str, stamp: int | None = None) -> bool:
    """Set an entry's comment. Returns False if the entry does not exist."""
    cursor = db.execute(
        "UPDATE entries SET ai_comment = ?, updated_at = ? WHERE id = ?",
        (comment, stamp or now_ms(), entry_id),
    )
    return cursor.rowcount > 0


async def get_content_strings(db: sqlite3.Connection) -> list[str]:
    """Content of every entry (used by the image mark phase)."""
    return [r["content"] for r in db.execute("SELECT content FROM entries").fetchall()]


# =============================================================================
# Content types and media items
# =============================================================================

async def upsert_content_types(db: sqlite3.Connection, content_types: list[dict]) -> int:
    if not content_types:
        return 0
    rows = [
        (
            ct["id"], ct.get("name") or ct["id"], ct.get("icon"), ct.get("color"),
            json.dumps(ct.get("fields") or []),
            1 if ct.get("builtIn") else 0,
            ct.get("order") or 0,
        )
        for ct in content_types
    ]
    db.executemany(
        """
        INSERT OR REPLACE INTO content_types
          (id, name, icon, color, fields, built_in, sort_order)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        rows,
    )
    return len(rows)


async def delete_content_types(db: sqlite3.Connection, ids: list[str]) -> int:
    """Delete user-defined content types; built-in rows are left alone."""
    if not ids:
        return 0
    cursor = db.executemany(
        "DELETE FROM content_types WHERE id = ? AND built_in = 0", [(i,) for i in ids]
    )
    return cursor.rowcount


async def get_content_types(db: sqlite3.Connection) -> list[dict]:
    rows = db.execute("SELECT * FROM content_types ORDER BY sort_order ASC, id ASC").fetchall()
    return [content_type_row_to_dict(r) for r in rows]


async def upsert_media_items(db: sqlite3.Connection, media_items: list[dict]) -> int:
    if not media_items:
        return 0
    now = now_ms()
    rows = [
        (
            m["id"], m.get("title") or "", m.get("mediaType") or "other",
            m.get("notionUrl"), m.get("coverUrl"), m.get("createdAt") or now,
        )
        for m in media_items
    ]
    db.executemany(
        """
        INSERT OR REPLACE INTO media_items
          (id, title, media_type, notion_url, cover_url, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        rows,
    )
    return len(rows)


async def delete_media_items(db: sqlite3.Connection, ids: list[str]) -> int:
    if not ids:
        return 0
    cursor = db.executemany("DELETE FROM media_items WHERE id = ?", [(i,) for i in ids])
    return cursor.rowcount


async def get_media_items(db: sqlite3.Connection) -> list[dict]:
    rows = db.execute("SELECT * FROM media_items ORDER BY created_at DESC").fetchall()
    return [media_item_row_to_dict(r) for r in rows]


# =============================================================================
# Sync metadata
# =============================================================================

async def get_last_modified(db: sqlite3.Connection) -> int | None:
    row = db.execute("SELECT value FROM sync_meta WHERE key = 'last_modified'").fetchone()
    return int(row["value"]) if row else None


async def next_last_modified(db: sqlite3.Connection) -> int:
    """The stamp the next write should use: now, but always past the current value."""
    previous = await get_last_modified(db) or 0
    return max(now_ms(), previous + 1)


async def set_last_modified(db: sqlite3.Connection, value: int) -> None:
    db.execute(
        "INSERT OR REPLACE INTO sync_meta (key, value) VALUES ('last_modified', ?)",
        (str(value),),
    )


async def touch_last_modified(db: sqlite3.Connection) -> int:
    """Bump ``last_modified`` to now, never moving it backwards."""
    value = await next_last_modified(db)
    await set_last_modified(db, value)
    return value


# =============================================================================
# Key-value store
# =============================================================================

async def kv_get(db: sqlite3.Connection, key: str) -> str | None:
    """Get a value; expired keys read as missing and are purged."""
    row = db.execute("SELECT value, expires_at FROM kv WHERE key = ?", (key,)).fetchone()
    if row is None:
        return None
    if row["expires_at"] is not None and row["expires_at"] <= now_ms():
        with db:
            db.execute("DELETE FROM kv WHERE key = ?", (key,))
        return None
    return row["value"]


async def kv_put(db: sqlite3.Connection, key: str, value: str, ttl_seconds: int | None = None) -> None:
    expires_at = now_ms() + ttl_seconds * 1000 if ttl_seconds else None
    with db:
        db.execute(
            "INSERT OR REPLACE INTO kv (key, value, expires_at) VALUES (?, ?, ?)",
            (key, value, expires_at),
        )


async def kv_delete(db: sqlite3.Connection, key: str) -> bool:
    with db:
        cursor = db.execute("DELETE FROM kv WHERE key = ?", (key,))
    return cursor.rowcount > 0


async def check_health(db: sqlite3.Connection) -> str:
    try:
        db.execute("SELECT 1").fetchone()
        return "connected"
    except sqlite3.Error as e:
        return f"error: {str(e)[:50]}"
