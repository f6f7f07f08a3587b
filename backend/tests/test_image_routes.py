"""Test image serving, upload and garbage collection."""

import pytest

from app.blobs import BlobStore, InvalidKeyError, get_blob_store
from app.config import get_settings
from app.routes.images import cover_key, extract_image_keys
from backend_helpers import make_entry

PNG = b"\x89PNG\r\n\x1a\nfake"


class TestReferenceExtraction:

    def test_plain_and_markdown_refs(self):
        texts = [
            "see /api/image/a.png and more",
            "![pic](https://host/api/image/b.jpg) trailing",
            "none here",
            None,
        ]
        assert extract_image_keys(texts) == {"a.png", "b.jpg"}

    def test_cover_key(self):
        assert cover_key("https://host/api/image/c.webp") == "c.webp"
        assert cover_key("c.webp") == "c.webp"
        assert cover_key("https://elsewhere.example/cover.jpg") is None
        assert cover_key(None) is None


class TestBlobStore:

    def test_pagination(self, tmp_path):
        store = BlobStore(tmp_path / "b")
        for name in ("a.png", "b.png", "c.png"):
            store.put(name, b"x")

        page, cursor = store.list_page(limit=2)
        assert page == ["a.png", "b.png"]
        assert cursor == "b.png"
        page, cursor = store.list_page(cursor, limit=2)
        assert page == ["c.png"]
        assert cursor is None
        assert store.list_all(page_size=1) == ["a.png", "b.png", "c.png"]

    def test_rejects_path_traversal(self, tmp_path):
        store = BlobStore(tmp_path / "b")
        with pytest.raises(InvalidKeyError):
            store.put("../escape.png", b"x")


class TestUploadAndServe:

    def upload(self, client, headers, content_type="image/png", data=PNG):
        return client.post(
            "/api/upload",
            files={"file": ("photo.png", data, content_type)},
            headers=headers,
        )

    def test_upload_then_get(self, client, auth_headers):
        response = self.upload(client, auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["filename"].endswith(".png")
        assert body["url"].endswith(f"/api/image/{body['filename']}")

        image = client.get(f"/api/image/{body['filename']}")
        assert image.status_code == 200
        assert image.content == PNG
        assert image.headers["content-type"] == "image/png"
        assert image.headers["cache-control"] == "public, max-age=31536000"

    def test_upload_requires_auth(self, client):
        assert self.upload(client, {}).status_code == 401

    def test_rejects_other_types(self, client, auth_headers):
        response = self.upload(client, auth_headers, content_type="application/pdf")
        assert response.status_code == 400

    def test_rejects_large_files(self, client, auth_headers, monkeypatch):
        monkeypatch.setenv("MAX_UPLOAD_BYTES", "4")
        get_settings.cache_clear()
        response = self.upload(client, auth_headers)
        assert response.status_code == 413

    def test_missing_image(self, client):
        response = client.get("/api/image/nope.png")
        assert response.status_code == 404
        assert response.json() == {"error": "Image not found"}


class TestCleanup:

    def test_deletes_only_unreferenced(self, client, auth_headers):
        blobs = get_blob_store()
        for key in ("a.png", "b.png", "c.png", "d.png"):
            blobs.put(key, PNG)

        client.post(
            "/api/data",
            json={
                "entries": [
                    make_entry("e1", 1, content="![x](http://testserver/api/image/a.png)"),
                    make_entry("e2", 2, content="/api/image/c.png"),
                ],
                "mediaItems": [
                    {"id": "m1", "title": "Dune", "mediaType": "book", "createdAt": 1, "coverUrl": "d.png"},
                ],
            },
            headers=auth_headers,
        )

        response = client.post("/api/cleanup", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["deleted"] == ["b.png"]
        assert body["deletedCount"] == 1
        assert sorted(body["kept"]) == ["a.png", "c.png", "d.png"]
        assert body["totalImages"] == 4
        assert body["usedImages"] == 3
        assert blobs.list_all() == ["a.png", "c.png", "d.png"]

    def test_references_across_many_pages_are_kept(self, client, auth_headers, monkeypatch):
        import app.blobs as blobs_module

        monkeypatch.setattr(blobs_module, "DEFAULT_PAGE_SIZE", 2)
        blobs = get_blob_store()
        keys = [f"img{i}.png" for i in range(7)]
        for key in keys:
            blobs.put(key, PNG)
        client.post(
            "/api/data",
            json={"entries": [make_entry("e1", 1, content=" ".join(f"/api/image/{k}" for k in keys[1:]))]},
            headers=auth_headers,
        )

        body = client.post("/api/cleanup", headers=auth_headers).json()
        assert body["deleted"] == ["img0.png"]

    def test_requires_auth(self, client):
        assert client.post("/api/cleanup").status_code == 401
