"""Load-time repair of entries against the current content-type schemas.

``migrate_entries`` is pure, deterministic and idempotent. It never raises:
historical data must always load, so malformed values are repaired or
dropped. Entries that need no repair come back as the same object, which
keeps the reference-based diff from reporting them as changed.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, List

from chronolog.types import ContentType, Entry, EntryType

logger = logging.getLogger(__name__)

# Category values that were later promoted to content types
LEGACY_PROMOTED_CATEGORIES = frozenset({"beans", "sparks"})


def migrate_entry(entry: Entry, types_by_id: Dict[str, ContentType]) -> Entry:
    """Apply all repairs to one entry, copying only when something changes."""
    changes = {}

    category = entry.category
    content_type = entry.content_type
    field_values = entry.field_values

    # 1. Legacy category promoted to a content type
    if (
        category in LEGACY_PROMOTED_CATEGORIES
        and not content_type
        and category in types_by_id
    ):
        content_type = category
        category = None
        changes["content_type"] = content_type
        changes["category"] = None

    # 2. SESSION_END never carries a category
    if entry.type == EntryType.SESSION_END and category:
        category = None
        changes["category"] = None

    # 3. Dangling content type reference
    if content_type and content_type not in types_by_id:
        content_type = None
        field_values = None
        changes["content_type"] = None
        changes["field_values"] = None

    # 4. Field values without a content type
    if not content_type and field_values is not None:
        field_values = None
        changes["field_values"] = None

    # 5. Undeclared field keys (only for types that declare fields)
    if content_type and field_values:
        type_def = types_by_id[content_type]
        if type_def.fields:
            valid_keys = type_def.field_ids
            if any(key not in valid_keys for key in field_values):
                field_values = {k: v for k, v in field_values.items() if k in valid_keys}
                changes["field_values"] = field_values

    if not changes:
        return entry
    return replace(entry, **changes)


def migrate_entries(entries: Iterable[Entry], content_types: Iterable[ContentType]) -> List[Entry]:
    """Repair a snapshot of entries against ``content_types``.

    Returns a new list; unaffected entries are the original objects.
    """
    entries = list(entries)
    types_by_id = {ct.id: ct for ct in content_types}
    result = [migrate_entry(entry, types_by_id) for entry in entries]

    repaired = sum(1 for before, after in zip(entries, result) if before is not after)
    if repaired:
        logger.debug("Normalizer repaired %d of %d entries", repaired, len(result))
    return result
