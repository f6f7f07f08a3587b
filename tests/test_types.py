"""Tests for chronolog.types wire conversion and field validation."""

import pytest

from chronolog.errors import ValidationError
from chronolog.types import (
    BUILTIN_CONTENT_TYPES,
    CATEGORIES,
    CloudData,
    ContentType,
    Entry,
    EntryType,
    FieldDefinition,
    FieldType,
    MediaItem,
    SyncResult,
)


class TestEntry:

    def test_from_dict_reads_camel_case(self):
        entry = Entry.from_dict({
            "id": "e1",
            "type": "NOTE",
            "content": "hello",
            "timestamp": 1700000000000,
            "sessionId": "s1",
            "contentType": "task",
            "fieldValues": {"done": True},
            "linkedEntries": ["e2"],
            "tags": ["x"],
            "aiComment": "nice",
        })
        assert entry.type == EntryType.NOTE
        assert entry.session_id == "s1"
        assert entry.content_type == "task"
        assert entry.field_values == {"done": True}
        assert entry.linked_entries == ("e2",)
        assert entry.tags == ("x",)
        assert entry.ai_comment == "nice"

    def test_to_dict_omits_empty_optionals(self):
        data = Entry(id="e1", type=EntryType.SESSION_START, timestamp=5).to_dict()
        assert data == {"id": "e1", "type": "SESSION_START", "content": "", "timestamp": 5}

    def test_round_trip(self):
        entry = Entry(
            id="e1", type=EntryType.NOTE, timestamp=5, content="c",
            category="craft", linked_entries=("e2",), duration=30,
        )
        assert Entry.from_dict(entry.to_dict()) == entry

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError, match="Unknown entry type"):
            Entry.from_dict({"id": "e1", "type": "MEMO", "timestamp": 1})

    def test_missing_timestamp_rejected(self):
        with pytest.raises(ValidationError, match="timestamp"):
            Entry.from_dict({"id": "e1", "type": "NOTE"})

    def test_boolean_timestamp_rejected(self):
        with pytest.raises(ValidationError):
            Entry.from_dict({"id": "e1", "type": "NOTE", "timestamp": True})

    def test_missing_id_rejected(self):
        with pytest.raises(ValidationError, match="'id'"):
            Entry.from_dict({"type": "NOTE", "timestamp": 1})

    def test_records_are_frozen(self):
        entry = Entry(id="e1", type=EntryType.NOTE, timestamp=1)
        with pytest.raises(AttributeError):
            entry.content = "edited"


class TestFieldValidation:

    @pytest.fixture
    def survey(self):
        return ContentType(
            id="survey",
            name="Survey",
            fields=(
                FieldDefinition(id="note", name="Note"),
                FieldDefinition(id="ok", name="OK", type=FieldType.BOOLEAN, default=False),
                FieldDefinition(id="score", name="Score", type=FieldType.NUMBER, required=True),
                FieldDefinition(id="mood", name="Mood", type=FieldType.DROPDOWN, options=("good", "bad")),
            ),
        )

    def test_defaults_fill_missing(self, survey):
        assert survey.validate_field_values({"score": 3}) == {"ok": False, "score": 3}

    def test_undeclared_key_rejected(self, survey):
        with pytest.raises(ValidationError, match="not declared"):
            survey.validate_field_values({"score": 1, "extra": 2})

    def test_required_missing_rejected(self, survey):
        with pytest.raises(ValidationError, match="score"):
            survey.validate_field_values({})

    @pytest.mark.parametrize("values", [
        {"score": "3"},
        {"score": True},
        {"score": 1, "ok": "yes"},
        {"score": 1, "mood": "meh"},
        {"score": 1, "note": 7},
    ])
    def test_wrong_types_rejected(self, survey, values):
        with pytest.raises(ValidationError, match="Invalid value"):
            survey.validate_field_values(values)

    def test_unknown_field_type_rejected(self):
        with pytest.raises(ValidationError, match="Unknown field type"):
            FieldDefinition.from_dict({"id": "x", "type": "date"})


class TestContentType:

    def test_round_trip(self):
        ct = ContentType(
            id="mood",
            name="Mood",
            fields=(FieldDefinition(id="tone", name="Tone", type=FieldType.DROPDOWN, options=("a", "b")),),
            order=4,
            color="#fff",
        )
        assert ContentType.from_dict(ct.to_dict()) == ct

    def test_builtin_flag_on_wire(self):
        data = BUILTIN_CONTENT_TYPES[2].to_dict()
        assert data["builtIn"] is True
        assert data["fields"][0] == {"id": "done", "name": "Done", "type": "boolean", "default": False}

    def test_builtins(self):
        assert [ct.id for ct in BUILTIN_CONTENT_TYPES] == ["beans", "sparks", "task"]
        assert all(ct.built_in for ct in BUILTIN_CONTENT_TYPES)


class TestCloudData:

    def test_missing_collections_default_empty(self):
        bundle = CloudData.from_dict({"entries": []})
        assert bundle.content_types == []
        assert bundle.media_items == []
        assert bundle.last_modified is None

    def test_null_entries_treated_as_empty(self):
        assert CloudData.from_dict({"entries": None}).entries == []

    @pytest.mark.parametrize("raw", [[], "x", {"entries": "nope"}, {"contentTypes": [{"name": "no id"}]}])
    def test_malformed_rejected(self, raw):
        with pytest.raises(ValidationError):
            CloudData.from_dict(raw)

    def test_full_bundle(self):
        bundle = CloudData.from_dict({
            "entries": [{"id": "e1", "type": "NOTE", "timestamp": 1}],
            "mediaItems": [{"id": "m1", "title": "Dune", "mediaType": "book", "createdAt": 3,
                            "coverUrl": "https://x/api/image/c.png"}],
            "categories": [c.to_dict() for c in CATEGORIES],
            "lastModified": 99,
        })
        assert bundle.media_items == [
            MediaItem(id="m1", title="Dune", media_type="book", created_at=3,
                      cover_url="https://x/api/image/c.png")
        ]
        assert len(bundle.categories) == len(CATEGORIES)
        assert bundle.last_modified == 99


class TestSyncResult:

    def test_success_tracks_errors(self):
        result = SyncResult()
        assert result.success
        result.errors.append("boom")
        assert not result.success
        assert result.to_dict()["success"] is False
