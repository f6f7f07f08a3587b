"""Image serve, upload and garbage collection."""

import re
import uuid
from typing import Annotated, Iterable

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from fastapi.responses import Response

from ..blobs import Blobs, InvalidKeyError
from ..config import Settings, get_settings
from ..database import Database, get_content_strings, get_media_items, now_ms
from ..logging_config import get_logger
from ..models import CleanupResponse, UploadResponse

logger = get_logger("chronolog.images")
router = APIRouter(prefix="/api", tags=["images"])

# Keys never contain whitespace, quotes or brackets, so a markdown image
# "(.../api/image/<key>)" yields just the key.
IMAGE_REF = re.compile(r"/api/image/([^\s)\"'\]>]+)")

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

IMMUTABLE_CACHE = "public, max-age=31536000"


def extract_image_keys(texts: Iterable[str | None]) -> set[str]:
    """Blob keys referenced as ``/api/image/<key>`` anywhere in ``texts``."""
    keys: set[str] = set()
    for text in texts:
        if text:
            keys.update(IMAGE_REF.findall(text))
    return keys


def cover_key(cover_url: str | None) -> str | None:
    """Blob key of a media cover, given as an image URL or a bare key."""
    if not cover_url:
        return None
    match = IMAGE_REF.search(cover_url)
    if match:
        return match.group(1)
    if "/" not in cover_url:
        return cover_url
    return None


@router.get("/image/{key}")
async def get_image(key: str, blobs: Blobs):
    try:
        blob = blobs.get(key)
    except InvalidKeyError:
        blob = None
    if blob is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    return Response(
        content=blob.data,
        media_type=blob.content_type,
        headers={"Cache-Control": IMMUTABLE_CACHE},
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    request: Request,
    blobs: Blobs,
    settings: Annotated[Settings, Depends(get_settings)],
    file: UploadFile = File(...),
):
    """Store an uploaded image under a fresh key and return its URL."""
    ext = IMAGE_EXTENSIONS.get(file.content_type or "")
    if ext is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Allowed: JPEG, PNG, GIF, WebP",
        )

    data = await file.read()
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Max size: {settings.max_upload_bytes // (1024 * 1024)}MB",
        )

    filename = f"{now_ms()}-{uuid.uuid4().hex[:8]}.{ext}"
    blobs.put(filename, data)
    url = str(request.url_for("get_image", key=filename))
    logger.info(f"Uploaded {filename} ({len(data)} bytes)")
    return UploadResponse(url=url, filename=filename)


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_images(db: Database, blobs: Blobs):
    """
    Delete every stored image that nothing references.

    The mark phase reads all entry content and all media covers before any
    listing or deletion, so a reference on any page protects its image.
    """
    used = extract_image_keys(await get_content_strings(db))
    for item in await get_media_items(db):
        key = cover_key(item.get("coverUrl"))
        if key:
            used.add(key)

    all_images = blobs.list_all()
    unreferenced = [key for key in all_images if key not in used]
    for key in unreferenced:
        blobs.delete(key)

    logger.info(f"CLEANUP | total={len(all_images)} used={len(used)} deleted={len(unreferenced)}")
    return CleanupResponse(
        total_images=len(all_images),
        used_images=len(used),
        deleted_count=len(unreferenced),
        deleted=unreferenced,
        kept=[key for key in all_images if key in used],
    )
