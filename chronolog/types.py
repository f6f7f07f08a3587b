"""
Shared data types for chronolog.

All synced records live here as frozen dataclasses. They are the shared
vocabulary between the local store, the normalizer, the diff engine and the
sync orchestrator.

Records are immutable values: every edit goes through ``dataclasses.replace``
and produces a new object. The diff engine detects changes by reference, so
an in-place edit (e.g. mutating ``field_values``) would go unnoticed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from chronolog.errors import ValidationError

# === Enums ===


class EntryType(str, Enum):
    """System-level entry kind; controls session flow."""

    SESSION_START = "SESSION_START"
    NOTE = "NOTE"
    SESSION_END = "SESSION_END"


class FieldType(str, Enum):
    """Value type of a content-type field."""

    TEXT = "text"
    BOOLEAN = "boolean"
    NUMBER = "number"
    DROPDOWN = "dropdown"


# === Records ===


@dataclass(frozen=True)
class FieldDefinition:
    """One typed field in a content-type schema."""

    id: str
    name: str
    type: FieldType = FieldType.TEXT
    options: Optional[Tuple[str, ...]] = None
    default: Any = None
    required: bool = False

    def accepts(self, value: Any) -> bool:
        """Check a single value against this field's type."""
        if value is None:
            return not self.required
        if self.type == FieldType.TEXT:
            return isinstance(value, str)
        if self.type == FieldType.BOOLEAN:
            return isinstance(value, bool)
        if self.type == FieldType.NUMBER:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if self.type == FieldType.DROPDOWN:
            return isinstance(value, str) and value in (self.options or ())
        return False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "name": self.name, "type": self.type.value}
        if self.options is not None:
            data["options"] = list(self.options)
        if self.default is not None:
            data["default"] = self.default
        if self.required:
            data["required"] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldDefinition":
        try:
            field_type = FieldType(data.get("type", "text"))
        except ValueError as e:
            raise ValidationError(f"Unknown field type: {data.get('type')!r}") from e
        options = data.get("options")
        return cls(
            id=_require_str(data, "id"),
            name=data.get("name") or data["id"],
            type=field_type,
            options=tuple(options) if options is not None else None,
            default=data.get("default"),
            required=bool(data.get("required", False)),
        )


@dataclass(frozen=True)
class ContentType:
    """User-extensible schema for structured entry fields.

    Built-in types are never deleted; only their fields may be edited.
    """

    id: str
    name: str
    fields: Tuple[FieldDefinition, ...] = ()
    built_in: bool = False
    order: int = 0
    color: Optional[str] = None
    icon: Optional[str] = None

    @property
    def field_ids(self) -> frozenset:
        return frozenset(f.id for f in self.fields)

    def validate_field_values(self, values: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Build a field-value mapping limited to this schema's declared keys.

        Declared defaults fill in missing keys. Raises ValidationError for an
        undeclared key, a value of the wrong type, an unknown dropdown option
        or a missing required field.
        """
        values = dict(values or {})
        declared = {f.id: f for f in self.fields}

        unknown = sorted(k for k in values if k not in declared)
        if unknown:
            raise ValidationError(
                f"Fields not declared by content type {self.id!r}: {', '.join(unknown)}"
            )

        result: Dict[str, Any] = {}
        for field_def in self.fields:
            value = values.get(field_def.id, field_def.default)
            if not field_def.accepts(value):
                raise ValidationError(
                    f"Invalid value for {self.id}.{field_def.id} "
                    f"({field_def.type.value}): {value!r}"
                )
            if value is not None:
                result[field_def.id] = value
        return result

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "order": self.order,
        }
        if self.built_in:
            data["builtIn"] = True
        if self.color:
            data["color"] = self.color
        if self.icon:
            data["icon"] = self.icon
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContentType":
        fields = data.get("fields") or []
        if not isinstance(fields, list):
            raise ValidationError(f"Content type fields must be a list, got {type(fields).__name__}")
        return cls(
            id=_require_str(data, "id"),
            name=data.get("name") or data["id"],
            fields=tuple(FieldDefinition.from_dict(f) for f in fields),
            built_in=bool(data.get("builtIn", False)),
            order=int(data.get("order") or 0),
            color=data.get("color"),
            icon=data.get("icon"),
        )


@dataclass(frozen=True)
class Entry:
    """One timeline record: a session marker or a note."""

    id: str
    type: EntryType
    timestamp: int
    content: str = ""
    session_id: Optional[str] = None
    duration: Optional[int] = None
    category: Optional[str] = None
    content_type: Optional[str] = None
    field_values: Optional[Dict[str, Any]] = None
    linked_entries: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    ai_comment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.session_id:
            data["sessionId"] = self.session_id
        if self.duration is not None:
            data["duration"] = self.duration
        if self.category:
            data["category"] = self.category
        if self.content_type:
            data["contentType"] = self.content_type
        if self.field_values is not None:
            data["fieldValues"] = dict(self.field_values)
        if self.linked_entries:
            data["linkedEntries"] = list(self.linked_entries)
        if self.tags:
            data["tags"] = list(self.tags)
        if self.ai_comment:
            data["aiComment"] = self.ai_comment
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Entry":
        try:
            entry_type = EntryType(data.get("type"))
        except ValueError as e:
            raise ValidationError(f"Unknown entry type: {data.get('type')!r}") from e
        timestamp = data.get("timestamp")
        if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
            raise ValidationError(f"Entry {data.get('id')!r} has no numeric timestamp")
        field_values = data.get("fieldValues")
        if field_values is not None and not isinstance(field_values, dict):
            raise ValidationError(f"Entry {data.get('id')!r} fieldValues must be an object")
        return cls(
            id=_require_str(data, "id"),
            type=entry_type,
            timestamp=int(timestamp),
            content=data.get("content") or "",
            session_id=data.get("sessionId"),
            duration=data.get("duration"),
            category=data.get("category") or None,
            content_type=data.get("contentType") or None,
            field_values=field_values,
            linked_entries=tuple(data.get("linkedEntries") or ()),
            tags=tuple(data.get("tags") or ()),
            ai_comment=data.get("aiComment"),
        )


@dataclass(frozen=True)
class MediaItem:
    """A tracked media item (book, film, ...) with an optional cover image."""

    id: str
    title: str
    media_type: str
    created_at: int
    notion_url: Optional[str] = None
    cover_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "mediaType": self.media_type,
            "createdAt": self.created_at,
        }
        if self.notion_url:
            data["notionUrl"] = self.notion_url
        if self.cover_url:
            data["coverUrl"] = self.cover_url
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MediaItem":
        return cls(
            id=_require_str(data, "id"),
            title=data.get("title") or "",
            media_type=data.get("mediaType") or "other",
            created_at=int(data.get("createdAt") or 0),
            notion_url=data.get("notionUrl"),
            cover_url=data.get("coverUrl"),
        )


@dataclass(frozen=True)
class Category:
    """Fixed, system-defined life-area category."""

    id: str
    label: str
    color: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "color": self.color,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Category":
        return cls(
            id=_require_str(data, "id"),
            label=data.get("label") or data["id"],
            color=data.get("color") or "",
            description=data.get("description") or "",
        )


@dataclass
class CloudData:
    """The bundle exchanged between a device and the remote store."""

    entries: List[Entry] = field(default_factory=list)
    content_types: List[ContentType] = field(default_factory=list)
    media_items: List[MediaItem] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    last_modified: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "contentTypes": [ct.to_dict() for ct in self.content_types],
            "mediaItems": [m.to_dict() for m in self.media_items],
            "categories": [c.to_dict() for c in self.categories],
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CloudData":
        """Parse a wire/import bundle. Raises ValidationError when malformed."""
        if not isinstance(data, dict):
            raise ValidationError("Bundle must be a JSON object")
        entries = data.get("entries")
        if entries is None:
            entries = []
        if not isinstance(entries, list):
            raise ValidationError("Bundle 'entries' must be a list")
        try:
            last_modified = data.get("lastModified")
            return cls(
                entries=[Entry.from_dict(e) for e in entries],
                content_types=[ContentType.from_dict(c) for c in data.get("contentTypes") or []],
                media_items=[MediaItem.from_dict(m) for m in data.get("mediaItems") or []],
                categories=[Category.from_dict(c) for c in data.get("categories") or []],
                last_modified=int(last_modified) if last_modified is not None else None,
            )
        except (TypeError, KeyError, AttributeError) as e:
            raise ValidationError(f"Malformed bundle: {e}") from e


@dataclass
class SyncResult:
    """Outcome of one sync cycle."""

    pulled: bool = False
    pushed: int = 0
    deleted: int = 0
    skipped: bool = False
    last_modified: Optional[int] = None
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pulled": self.pulled,
            "pushed": self.pushed,
            "deleted": self.deleted,
            "skipped": self.skipped,
            "lastModified": self.last_modified,
            "errors": list(self.errors),
            "success": self.success,
        }


@dataclass
class LoginResult:
    success: bool
    error: Optional[str] = None


@dataclass
class CleanupResult:
    """Outcome of an image garbage-collection run."""

    deleted: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)
    total_images: int = 0
    used_images: int = 0

    @property
    def deleted_count(self) -> int:
        return len(self.deleted)


# === Constants ===

# Fixed categories (not user-editable)
CATEGORIES: Tuple[Category, ...] = (
    Category("hustle", "Hustle", "#7aa2f7", "Paid work, career and business"),
    Category("craft", "Craft", "#bb9af7", "Deliberate practice and skill building"),
    Category("hardware", "Hardware", "#4dcc59", "Body, health and exercise"),
    Category("kernel", "Kernel", "#89ddff", "Rest, reflection and inner life"),
    Category("barter", "Barter", "#c8e068", "Errands, chores and exchanges"),
    Category("wonder", "Wonder", "#f7768e", "Play, exploration and curiosity"),
    Category("beans", "Beans", "#ff9e64", "Food and drink"),
)

BUILTIN_CONTENT_TYPES: Tuple[ContentType, ...] = (
    ContentType(id="beans", name="Beans", built_in=True, order=0),
    ContentType(id="sparks", name="Sparks", built_in=True, order=1),
    ContentType(
        id="task",
        name="Task",
        fields=(FieldDefinition(id="done", name="Done", type=FieldType.BOOLEAN, default=False),),
        built_in=True,
        order=2,
    ),
)


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationError(f"Missing or invalid '{key}': {value!r}")
    return value
