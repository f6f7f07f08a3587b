"""Test the bundle routes (GET/POST/PUT /api/data)."""

import sqlite3

import app.routes.data as data_routes
from backend_helpers import make_entry


def push(client, headers, **payload):
    response = client.post("/api/data", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


class TestReadBundle:

    def test_empty_bundle(self, client):
        body = client.get("/api/data").json()
        assert body["entries"] == []
        assert body["contentTypes"] == []
        assert body["mediaItems"] == []
        assert body["lastModified"] is None
        assert body["deletedIds"] == []
        assert body["incremental"] is False
        assert {c["id"] for c in body["categories"]} >= {"hustle", "beans"}

    def test_meta_only(self, client, auth_headers):
        result = push(client, auth_headers, entries=[make_entry("e1", 1000)])
        body = client.get("/api/data", params={"meta": "true"}).json()
        assert body == {"lastModified": result["lastModified"]}


class TestPush:

    def test_round_trip_preserves_wire_fields(self, client, auth_headers):
        entry = make_entry(
            "e1", 1000,
            sessionId="s1",
            category="craft",
            contentType="task",
            fieldValues={"done": True},
            linkedEntries=["e2"],
            tags=["x"],
        )
        push(client, auth_headers, entries=[entry])
        stored = client.get("/api/data").json()["entries"]
        assert stored == [entry]

    def test_note_content_type_reads_as_unset(self, client, auth_headers):
        push(client, auth_headers, entries=[make_entry("e1", 1000)])
        stored = client.get("/api/data").json()["entries"][0]
        assert "contentType" not in stored

    def test_put_is_accepted(self, client, auth_headers):
        response = client.put("/api/data", json={"entries": [make_entry("e1", 1)]}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_last_modified_increases(self, client, auth_headers):
        first = push(client, auth_headers, entries=[make_entry("e1", 1)])["lastModified"]
        second = push(client, auth_headers, entries=[make_entry("e2", 2)])["lastModified"]
        assert second > first

    def test_upsert_replaces_existing(self, client, auth_headers):
        push(client, auth_headers, entries=[make_entry("e1", 1, content="old")])
        push(client, auth_headers, entries=[make_entry("e1", 1, content="new")])
        entries = client.get("/api/data").json()["entries"]
        assert [e["content"] for e in entries] == ["new"]

    def test_deletes(self, client, auth_headers):
        push(
            client, auth_headers,
            entries=[make_entry("e1", 1), make_entry("e2", 2)],
            contentTypes=[{"id": "mood", "name": "Mood"}],
            mediaItems=[{"id": "m1", "title": "Dune", "mediaType": "book", "createdAt": 5}],
        )
        push(
            client, auth_headers,
            deletedIds=["e1"],
            deletedContentTypeIds=["mood"],
            deletedMediaItemIds=["m1"],
        )
        body = client.get("/api/data").json()
        assert [e["id"] for e in body["entries"]] == ["e2"]
        assert body["contentTypes"] == []
        assert body["mediaItems"] == []

    def test_builtin_content_type_is_never_deleted(self, client, auth_headers):
        push(client, auth_headers, contentTypes=[{"id": "task", "name": "Task", "builtIn": True}])
        push(client, auth_headers, deletedContentTypeIds=["task"])
        types = client.get("/api/data").json()["contentTypes"]
        assert [ct["id"] for ct in types] == ["task"]
        assert types[0]["builtIn"] is True

    def test_media_cover_url_round_trips(self, client, auth_headers):
        item = {"id": "m1", "title": "Dune", "mediaType": "book", "createdAt": 5,
                "coverUrl": "https://x/api/image/c.png"}
        push(client, auth_headers, mediaItems=[item])
        assert client.get("/api/data").json()["mediaItems"] == [item]

    def test_malformed_body(self, client, auth_headers):
        response = client.post("/api/data", json={"entries": [{"id": "e1"}]}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid data format"}

    def test_malformed_body_changes_nothing(self, client, auth_headers):
        client.post("/api/data", json={"entries": "nope"}, headers=auth_headers)
        assert client.get("/api/data").json()["lastModified"] is None

    def test_failed_write_rolls_back_whole_push(self, client, auth_headers, monkeypatch):
        before = push(client, auth_headers, entries=[make_entry("e1", 1, content="kept")])["lastModified"]

        async def failing_delete(db, ids):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(data_routes, "delete_media_items", failing_delete)
        response = client.post(
            "/api/data",
            json={
                "entries": [make_entry("e1", 1, content="lost"), make_entry("e2", 2)],
                "deletedIds": ["e1"],
                "deletedMediaItemIds": ["m1"],
            },
            headers=auth_headers,
        )
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save data"}

        body = client.get("/api/data").json()
        assert [(e["id"], e["content"]) for e in body["entries"]] == [("e1", "kept")]
        assert body["lastModified"] == before
        assert client.get("/api/data", params={"since": 0}).json()["deletedIds"] == []


class TestIncrementalRead:

    def test_since_returns_changes_and_tombstones(self, client, auth_headers):
        cursor = push(client, auth_headers, entries=[make_entry("old", 1), make_entry("gone", 2)])["lastModified"]
        push(client, auth_headers, entries=[make_entry("new", 3)], deletedIds=["gone"])

        body = client.get("/api/data", params={"since": cursor}).json()
        assert body["incremental"] is True
        assert [e["id"] for e in body["entries"]] == ["new"]
        assert body["deletedIds"] == ["gone"]

    def test_reupserting_clears_tombstone(self, client, auth_headers):
        cursor = push(client, auth_headers, entries=[make_entry("e1", 1)])["lastModified"]
        push(client, auth_headers, deletedIds=["e1"])
        push(client, auth_headers, entries=[make_entry("e1", 1)])
        body = client.get("/api/data", params={"since": cursor}).json()
        assert body["deletedIds"] == []
        assert [e["id"] for e in body["entries"]] == ["e1"]
