"""Filesystem object store for uploaded images."""

import mimetypes
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

from fastapi import Depends

from .config import Settings, get_settings

KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,199}$")

DEFAULT_PAGE_SIZE = 1000


class InvalidKeyError(ValueError):
    pass


@dataclass
class Blob:
    key: str
    data: bytes
    content_type: str


class BlobStore:
    """Flat directory of blobs with cursor-paginated listing.

    Keys are plain file names; the content type is derived from the
    extension.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not KEY_PATTERN.match(key) or ".." in key:
            raise InvalidKeyError(f"Invalid blob key: {key!r}")
        return self.root / key

    def get(self, key: str) -> Blob | None:
        path = self._path(key)
        if not path.is_file():
            return None
        content_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
        return Blob(key=key, data=path.read_bytes(), content_type=content_type)

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.root), prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False

    def list_page(self, cursor: str | None = None, limit: int | None = None) -> tuple[list[str], str | None]:
        """One page of keys in sorted order.

        Returns ``(keys, next_cursor)``; ``next_cursor`` is None on the last page.
        """
        names = sorted(
            p.name for p in self.root.iterdir()
            if p.is_file() and KEY_PATTERN.match(p.name)
        )
        if cursor is not None:
            names = [n for n in names if n > cursor]
        limit = limit or DEFAULT_PAGE_SIZE
        page = names[:limit]
        next_cursor = page[-1] if len(names) > limit else None
        return page, next_cursor

    def list_all(self, page_size: int | None = None) -> list[str]:
        """Every key, following the cursor across all pages."""
        keys: list[str] = []
        cursor = None
        while True:
            page, cursor = self.list_page(cursor, page_size)
            keys.extend(page)
            if cursor is None:
                return keys


_blob_store: BlobStore | None = None


def get_blob_store(settings: Settings | None = None) -> BlobStore:
    """Get the cached blob store."""
    global _blob_store
    if _blob_store is None:
        if settings is None:
            settings = get_settings()
        _blob_store = BlobStore(settings.blob_dir)
    return _blob_store


def reset_blob_store() -> None:
    global _blob_store
    _blob_store = None


def get_blobs(settings: Annotated[Settings, Depends(get_settings)]) -> BlobStore:
    """FastAPI dependency for the blob store."""
    return get_blob_store(settings)


Blobs = Annotated[BlobStore, Depends(get_blobs)]
