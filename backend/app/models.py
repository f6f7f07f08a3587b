"""Pydantic models for API requests and responses.

The wire format is camelCase; models use snake_case attributes with camelCase
aliases, and routes dump them with ``by_alias=True``.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# Auth Models
# =============================================================================

class LoginRequest(WireModel):
    password: str


class LoginResponse(WireModel):
    success: bool = True
    token: str
    expires_at: int


class SuccessResponse(WireModel):
    success: bool = True


# =============================================================================
# Record Models
# =============================================================================

class EntryIn(WireModel):
    id: str = Field(..., min_length=1)
    type: Literal["SESSION_START", "NOTE", "SESSION_END"]
    content: str = ""
    timestamp: int
    session_id: str | None = None
    duration: int | None = None
    category: str | None = None
    content_type: str | None = None
    field_values: dict[str, Any] | None = None
    linked_entries: list[str] | None = None
    tags: list[str] | None = None
    ai_comment: str | None = None


class ContentTypeIn(WireModel):
    id: str = Field(..., min_length=1)
    name: str
    fields: list[dict[str, Any]] = []
    built_in: bool = False
    order: int = 0
    color: str | None = None
    icon: str | None = None


class MediaItemIn(WireModel):
    id: str = Field(..., min_length=1)
    title: str
    media_type: str
    notion_url: str | None = None
    cover_url: str | None = None
    created_at: int | None = None


# =============================================================================
# Data Models
# =============================================================================

class DataPushRequest(WireModel):
    """Partial bundle: records to upsert and ids to delete."""
    entries: list[EntryIn] = []
    content_types: list[ContentTypeIn] = []
    media_items: list[MediaItemIn] = []
    deleted_ids: list[str] = []
    deleted_content_type_ids: list[str] = []
    deleted_media_item_ids: list[str] = []


class DataPushResponse(WireModel):
    success: bool = True
    last_modified: int


class CommentRequest(WireModel):
    comment: str = ""


class UploadResponse(WireModel):
    success: bool = True
    url: str
    filename: str


class CleanupResponse(WireModel):
    success: bool = True
    total_images: int
    used_images: int
    deleted_count: int
    deleted: list[str]
    kept: list[str]


# =============================================================================
# Fixed categories
# =============================================================================

CATEGORIES: list[dict[str, str]] = [
    {"id": "hustle", "label": "Hustle", "color": "#7aa2f7",
     "description": "Paid work, career and business"},
    {"id": "craft", "label": "Craft", "color": "#bb9af7",
     "description": "Deliberate practice and skill building"},
    {"id": "hardware", "label": "Hardware", "color": "#4dcc59",
     "description": "Body, health and exercise"},
    {"id": "kernel", "label": "Kernel", "color": "#89ddff",
     "description": "Rest, reflection and inner life"},
    {"id": "barter", "label": "Barter", "color": "#c8e068",
     "description": "Errands, chores and exchanges"},
    {"id": "wonder", "label": "Wonder", "color": "#f7768e",
     "description": "Play, exploration and curiosity"},
    {"id": "beans", "label": "Beans", "color": "#ff9e64",
     "description": "Food and drink"},
]
