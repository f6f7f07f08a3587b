"""Record builders and an in-memory backend shared by the client tests."""

import json

import httpx

from chronolog.types import BUILTIN_CONTENT_TYPES, Entry, EntryType

BACKEND = "https://journal.example.com"


def make_note(entry_id: str, timestamp: int = 1, **extra) -> Entry:
    return Entry(id=entry_id, type=EntryType.NOTE, timestamp=timestamp, **extra)


class FakeBackend:
    """Just enough of the backend protocol to drive the orchestrator."""

    def __init__(self, password="pw"):
        self.password = password
        self.tokens = set()
        self.entries = {}
        self.content_types = {ct.id: ct.to_dict() for ct in BUILTIN_CONTENT_TYPES}
        self.media_items = {}
        self.last_modified = None
        self.pushes = []
        self.fail_pushes = 0
        # 1-based numbers of the pushes to reject
        self.fail_on = set()
        self.gate = None
        self.requests = []
        self.entries_at_cleanup = None

    def _authorized(self, request):
        header = request.headers.get("authorization", "")
        return header.removeprefix("Bearer ") in self.tokens

    def _bump(self):
        self.last_modified = (self.last_modified or 0) + 1

    async def __call__(self, request):
        path = request.url.path
        method = request.method
        self.requests.append((method, path))

        if path == "/api/auth" and method == "POST":
            body = json.loads(request.content)
            if body.get("password") != self.password:
                return httpx.Response(401, json={"error": "Invalid password"})
            token = f"token-{len(self.tokens) + 1}"
            self.tokens.add(token)
            return httpx.Response(200, json={"success": True, "token": token, "expiresAt": 2**50})

        if path == "/api/data" and method == "GET":
            if request.url.params.get("meta"):
                return httpx.Response(200, json={"lastModified": self.last_modified})
            return httpx.Response(200, json={
                "entries": list(self.entries.values()),
                "contentTypes": list(self.content_types.values()),
                "mediaItems": list(self.media_items.values()),
                "categories": [],
                "lastModified": self.last_modified,
            })

        if not self._authorized(request):
            return httpx.Response(401, json={"error": "Invalid token"})

        if path == "/api/auth/logout":
            self.tokens.discard(request.headers["authorization"].removeprefix("Bearer "))
            return httpx.Response(200, json={"success": True})

        if path == "/api/data" and method == "POST":
            if self.gate is not None:
                await self.gate.wait()
            body = json.loads(request.content)
            self.pushes.append(body)
            if self.fail_pushes or len(self.pushes) in self.fail_on:
                self.fail_pushes = max(self.fail_pushes - 1, 0)
                return httpx.Response(500, json={"error": "Failed to save data"})
            for e in body.get("entries", []):
                self.entries[e["id"]] = e
            for ct in body.get("contentTypes", []):
                self.content_types[ct["id"]] = ct
            for m in body.get("mediaItems", []):
                self.media_items[m["id"]] = m
            for i in body.get("deletedIds", []):
                self.entries.pop(i, None)
            for i in body.get("deletedContentTypeIds", []):
                self.content_types.pop(i, None)
            for i in body.get("deletedMediaItemIds", []):
                self.media_items.pop(i, None)
            self._bump()
            return httpx.Response(200, json={"success": True, "lastModified": self.last_modified})

        if path == "/api/cleanup":
            self.entries_at_cleanup = set(self.entries)
            return httpx.Response(200, json={
                "success": True, "totalImages": 0, "usedImages": 0, "deletedCount": 0,
                "deleted": [], "kept": [],
            })

        if path == "/api/migrate":
            return httpx.Response(200, json={"success": True, "migrated": {"entries": 0}})

        return httpx.Response(404, json={"error": "Not found"})
