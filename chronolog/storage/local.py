"""Durable local store for one device.

Holds three things in a single JSON file:

* the current read-state bundle (what the UI shows and edits),
* the baseline: the collections as last known to the remote store, which
  the sync orchestrator diffs against,
* the sync cursor (remote ``lastModified`` last seen) and last sync time.

Key design choices:

* **Atomic writes** -- ``save()`` writes a temp file and ``os.replace()``s
  it, so a second process reading the file never sees partial data.
* **Shared references across restarts** -- when loading, a current record
  equal to its baseline counterpart is replaced by the baseline object.
  The reference-based diff then reports only real edits, even in a fresh
  process where every record was just deserialized.
* **Copy-on-write mutations** -- every edit replaces a record with a new
  object and never mutates one.
"""

import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from chronolog import links
from chronolog.errors import ValidationError
from chronolog.sync.migrate import migrate_entries
from chronolog.types import (
    BUILTIN_CONTENT_TYPES,
    CATEGORIES,
    CloudData,
    ContentType,
    Entry,
    MediaItem,
)
from chronolog.utils import get_chronolog_home, now_ms

logger = logging.getLogger(__name__)

STORE_VERSION = 1


def default_store_path() -> Path:
    return get_chronolog_home() / "data.json"


def _intern(current: Sequence, baseline: Sequence) -> List:
    """Reuse baseline objects for current records that are equal by value."""
    by_id = {item.id: item for item in baseline}
    result = []
    for item in current:
        known = by_id.get(item.id)
        result.append(known if known is not None and known == item else item)
    return result


class LocalStore:
    """JSON-file backed store of the device's bundle and sync bookkeeping.

    Args:
        path: File to persist to. Defaults to ``$CHRONOLOG_HOME/data.json``.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else default_store_path()
        self._data = CloudData(
            content_types=list(BUILTIN_CONTENT_TYPES),
            categories=list(CATEGORIES),
        )
        self._baseline: Optional[CloudData] = None
        self._cursor: Optional[int] = None
        self._last_synced: Optional[int] = None
        if self.path.exists():
            self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Read the store file. Raises ValidationError if it is corrupt."""
        try:
            with open(self.path, encoding="utf-8") as fh:
                raw = json.load(fh)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Local store {self.path} is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise ValidationError(f"Local store {self.path} has an unexpected layout")

        data = CloudData.from_dict(raw.get("data") or {})
        baseline = CloudData.from_dict(raw["baseline"]) if raw.get("baseline") else None

        if baseline is not None:
            data.entries = _intern(data.entries, baseline.entries)
            data.content_types = _intern(data.content_types, baseline.content_types)
            data.media_items = _intern(data.media_items, baseline.media_items)

        if not data.content_types:
            data.content_types = list(BUILTIN_CONTENT_TYPES)
        if not data.categories:
            data.categories = list(CATEGORIES)
        data.entries = migrate_entries(data.entries, data.content_types)

        self._data = data
        self._baseline = baseline
        self._cursor = raw.get("cursor")
        self._last_synced = raw.get("lastSynced")

    def save(self) -> None:
        """Persist the store atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload: Dict[str, Any] = {
            "version": STORE_VERSION,
            "data": self._data.to_dict(),
            "baseline": self._baseline.to_dict() if self._baseline is not None else None,
            "cursor": self._cursor,
            "lastSynced": self._last_synced,
        }

        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Read state
    # ------------------------------------------------------------------

    def snapshot(self) -> CloudData:
        """Current bundle. Lists are copies; records are shared (immutable)."""
        return CloudData(
            entries=list(self._data.entries),
            content_types=list(self._data.content_types),
            media_items=list(self._data.media_items),
            categories=list(self._data.categories),
            last_modified=self._data.last_modified,
        )

    def replace(self, bundle: CloudData) -> None:
        """Replace the read-state with a pulled bundle and persist."""
        self._data = CloudData(
            entries=list(bundle.entries),
            content_types=list(bundle.content_types) or list(self._data.content_types),
            media_items=list(bundle.media_items),
            categories=list(bundle.categories) or list(self._data.categories),
            last_modified=bundle.last_modified,
        )
        self.save()

    def import_json(self, text: str) -> CloudData:
        """Replace local data with an exported bundle given as JSON text.

        Malformed input raises ValidationError and leaves the store untouched.
        """
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Import is not valid JSON: {e}") from e

        bundle = CloudData.from_dict(raw)
        content_types = bundle.content_types or list(self._data.content_types)
        bundle.content_types = content_types
        bundle.entries = migrate_entries(bundle.entries, content_types)
        self.replace(bundle)
        return bundle

    # ------------------------------------------------------------------
    # Sync bookkeeping
    # ------------------------------------------------------------------

    def baseline(self) -> CloudData:
        """Collections as last known to the remote store (empty if never synced)."""
        if self._baseline is None:
            return CloudData()
        return self._baseline

    def set_baseline(
        self,
        entries: Sequence[Entry],
        content_types: Sequence[ContentType],
        media_items: Sequence[MediaItem],
    ) -> None:
        self._baseline = CloudData(
            entries=list(entries),
            content_types=list(content_types),
            media_items=list(media_items),
        )

    @property
    def cursor(self) -> Optional[int]:
        return self._cursor

    @property
    def last_synced(self) -> Optional[int]:
        return self._last_synced

    def advance_cursor(self, cursor: Optional[int]) -> None:
        """Record an acknowledged push and persist the baseline with it."""
        if cursor is not None:
            self._cursor = cursor
        self.save()

    def mark_synced(self, cursor: Optional[int]) -> None:
        """Record a completed round trip and persist everything."""
        if cursor is not None:
            self._cursor = cursor
        self._last_synced = now_ms()
        self.save()

    # ------------------------------------------------------------------
    # Mutations (copy-on-write)
    # ------------------------------------------------------------------

    def put_entry(self, entry: Entry) -> Entry:
        """Insert or replace an entry.

        Field values are checked against the entry's content type.
        """
        if entry.content_type:
            type_def = self._content_type(entry.content_type)
            if type_def is None:
                raise ValidationError(f"Unknown content type: {entry.content_type}")
            validated = type_def.validate_field_values(entry.field_values)
            if validated != (entry.field_values or {}):
                entry = replace(entry, field_values=validated)
        elif entry.field_values:
            raise ValidationError("Field values require a content type")

        self._data.entries = self._upsert(self._data.entries, entry)
        self.save()
        return entry

    def delete_entry(self, entry_id: str) -> None:
        arena = links.build_arena(self._data.entries)
        self._data.entries = list(links.drop_entry(arena, entry_id).values())
        self.save()

    def link(self, a: str, b: str) -> None:
        arena = links.link_entries(links.build_arena(self._data.entries), a, b)
        self._data.entries = list(arena.values())
        self.save()

    def unlink(self, a: str, b: str) -> None:
        arena = links.unlink_entries(links.build_arena(self._data.entries), a, b)
        self._data.entries = list(arena.values())
        self.save()

    def asymmetric_links(self) -> List[Tuple[str, str]]:
        """(source, target) pairs where the target does not link back or is missing."""
        return links.find_asymmetric_links(links.build_arena(self._data.entries))

    def put_content_type(self, content_type: ContentType) -> None:
        existing = self._content_type(content_type.id)
        if existing is not None and existing.built_in and not content_type.built_in:
            content_type = replace(content_type, built_in=True)
        self._data.content_types = self._upsert(self._data.content_types, content_type)
        self._data.entries = migrate_entries(self._data.entries, self._data.content_types)
        self.save()

    def delete_content_type(self, type_id: str) -> None:
        existing = self._content_type(type_id)
        if existing is None:
            raise ValidationError(f"Unknown content type: {type_id}")
        if existing.built_in:
            raise ValidationError(f"Built-in content type {type_id!r} cannot be deleted")
        self._data.content_types = [ct for ct in self._data.content_types if ct.id != type_id]
        self._data.entries = migrate_entries(self._data.entries, self._data.content_types)
        self.save()

    def put_media_item(self, item: MediaItem) -> None:
        self._data.media_items = self._upsert(self._data.media_items, item)
        self.save()

    def delete_media_item(self, item_id: str) -> None:
        self._data.media_items = [m for m in self._data.media_items if m.id != item_id]
        self.save()

    def _content_type(self, type_id: str) -> Optional[ContentType]:
        return next((ct for ct in self._data.content_types if ct.id == type_id), None)

    @staticmethod
    def _upsert(items: List, record) -> List:
        for i, existing in enumerate(items):
            if existing.id == record.id:
                return items[:i] + [record] + items[i + 1:]
        return items + [record]
