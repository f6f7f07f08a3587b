"""Sync orchestrator: drives login, pull, normalize, diff and push.

One orchestrator owns one device's session with one backend. The cycle is:

1. Ask the backend for its ``lastModified``. If it is newer than the local
   cursor, pull the full bundle, normalize it and replace local state.
   Local changes not yet pushed are laid back on top of the pulled data.
   The raw pulled collections become the new baseline.
2. Diff current local collections against the baseline (by reference) and
   push the changed records and deleted ids in batches.
3. Each acknowledged batch advances the baseline by the records it carried
   and moves the cursor to the ``lastModified`` it returned.

A failed batch leaves its records out of the baseline, so the next cycle
sends them again. Upserts and deletes are idempotent on the backend.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from chronolog.api import DEFAULT_TIMEOUT, ChronologAPI, validate_backend_url
from chronolog.credentials import (
    clear_credentials,
    load_credentials,
    save_credentials,
    token_is_current,
)
from chronolog.errors import AuthError, ChronologError
from chronolog.logging_config import log_auth, log_sync
from chronolog.storage.local import LocalStore
from chronolog.sync.diff import DiffResult, compute_diff
from chronolog.sync.migrate import migrate_entries
from chronolog.types import (
    BUILTIN_CONTENT_TYPES,
    CleanupResult,
    CloudData,
    ContentType,
    Entry,
    LoginResult,
    MediaItem,
    SyncResult,
)

logger = logging.getLogger(__name__)

# Max entries per push request
PUSH_BATCH_SIZE = 200

DEFAULT_SYNC_INTERVAL = 60.0


class SyncState(str, Enum):
    LOGGED_OUT = "logged_out"
    AUTHENTICATING = "authenticating"
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


def chunk_entries(entries: List[Entry], batch_size: int) -> List[List[Entry]]:
    """Split changed entries into push batches. Always at least one batch."""
    return [entries[i:i + batch_size] for i in range(0, len(entries), batch_size)] or [[]]


def _is_custom(content_type: ContentType) -> bool:
    return not content_type.built_in


def _overlay(remote: List, pending: DiffResult) -> List:
    """Pulled records with unpushed local writes and deletions laid on top."""
    changed = {item.id: item for item in pending.changed}
    deleted = set(pending.deleted_ids)
    merged = [changed.pop(item.id, item) for item in remote if item.id not in deleted]
    return merged + list(changed.values())


def _advance(known: Dict[str, Any], changed: List, deleted_ids: List[str]) -> None:
    for item in changed:
        known[item.id] = item
    for item_id in deleted_ids:
        known.pop(item_id, None)


def build_push_payloads(
    entry_diff: DiffResult[Entry],
    type_diff: DiffResult[ContentType],
    media_diff: DiffResult[MediaItem],
    batch_size: int = PUSH_BATCH_SIZE,
) -> List[Dict[str, Any]]:
    """Split the pending writes into ``POST /api/data`` bodies.

    Changed entries are chunked by ``batch_size``. Content types and media
    items ride on the first request; deletions ride on the last one, so a
    record is never deleted before the writes that preceded it.
    """
    chunks = chunk_entries(entry_diff.changed, batch_size)
    payloads: List[Dict[str, Any]] = [{"entries": [e.to_dict() for e in chunk]} for chunk in chunks]
    payloads[0]["contentTypes"] = [ct.to_dict() for ct in type_diff.changed]
    payloads[0]["mediaItems"] = [m.to_dict() for m in media_diff.changed]
    payloads[-1]["deletedIds"] = list(entry_diff.deleted_ids)
    payloads[-1]["deletedContentTypeIds"] = list(type_diff.deleted_ids)
    payloads[-1]["deletedMediaItemIds"] = list(media_diff.deleted_ids)
    return payloads


class SyncOrchestrator:
    """Session and sync driver for one device.

    Args:
        store: The device's local store.
        backend_url: Backend base URL.
        token: Explicit bearer token. When omitted, a saved, unexpired token
            for the same backend is loaded from the credentials file.
        credentials_path: Override for the credentials file location.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        store: LocalStore,
        backend_url: str,
        token: Optional[str] = None,
        credentials_path: Optional[Path] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self.backend_url = validate_backend_url(backend_url)
        self._credentials_path = credentials_path
        self._api = ChronologAPI(self.backend_url, timeout=timeout, transport=transport)
        # Held for a whole cycle, and by cleanup across its sync and sweep
        self._sync_lock = asyncio.Lock()
        self.batch_size = PUSH_BATCH_SIZE

        self.state = SyncState.LOGGED_OUT
        self.error: Optional[str] = None

        if token is None:
            creds = load_credentials(credentials_path)
            if token_is_current(creds) and creds.get("backend_url", self.backend_url) == self.backend_url:
                token = creds["auth_token"]
        if token:
            self._api.token = token
            self.state = SyncState.IDLE

    async def close(self) -> None:
        await self._api.close()

    async def __aenter__(self) -> "SyncOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @property
    def is_logged_in(self) -> bool:
        return bool(self._api.token)

    @property
    def is_syncing(self) -> bool:
        return self._sync_lock.locked()

    async def login(self, password: str) -> LoginResult:
        """Exchange the shared password for a device token.

        On failure the saved credentials are left as they were.
        """
        self.state = SyncState.AUTHENTICATING
        try:
            result = await self._api.authenticate(password)
        except ChronologError as e:
            self._fail(str(e))
            log_auth("login_failed", detail=str(e))
            return LoginResult(success=False, error=str(e))

        token = result["token"]
        save_credentials(
            {
                "backend_url": self.backend_url,
                "auth_token": token,
                "token_expires": result.get("expiresAt"),
            },
            self._credentials_path,
        )
        self._api.token = token
        self.error = None
        self.state = SyncState.IDLE
        log_auth("login", token=token)
        return LoginResult(success=True)

    async def logout(self) -> None:
        """Revoke the token on the backend (best effort) and forget it locally."""
        token = self._api.token
        if token:
            try:
                await self._api.revoke()
            except ChronologError as e:
                logger.warning("Could not revoke token on backend: %s", e)
        self._api.token = None
        clear_credentials(self._credentials_path)
        self.error = None
        self.state = SyncState.LOGGED_OUT
        log_auth("logout", token=token)

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "backendUrl": self.backend_url,
            "isLoggedIn": self.is_logged_in,
            "isSyncing": self.is_syncing,
            "cursor": self.store.cursor,
            "lastSynced": self.store.last_synced,
            "error": self.error,
        }

    def _fail(self, message: str) -> None:
        self.error = message
        self.state = SyncState.ERROR

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def sync(self) -> SyncResult:
        """Run one pull/push cycle.

        A call made while another cycle is running returns immediately with
        ``skipped=True``. Errors are reported in the result, not raised.
        """
        if self._sync_lock.locked():
            logger.debug("Sync already in progress, skipping")
            return SyncResult(skipped=True)
        async with self._sync_lock:
            return await self._run_cycle()

    async def _run_cycle(self) -> SyncResult:
        result = SyncResult()
        if not self.is_logged_in:
            result.errors.append("Not logged in")
            return result

        self.state = SyncState.SYNCING
        try:
            await self._pull(result)
            await self._push(result)
        except ChronologError as e:
            result.errors.append(str(e))
            self._fail(str(e))
            log_sync("cycle", pushed=result.pushed, deleted=result.deleted,
                     pulled=result.pulled, success=False, error=str(e))
            if isinstance(e, AuthError):
                logger.warning("Sync rejected by backend; log in again")
            return result

        self.store.mark_synced(result.last_modified)
        self.error = None
        self.state = SyncState.IDLE
        log_sync("cycle", pushed=result.pushed, deleted=result.deleted, pulled=result.pulled)
        return result

    def _pending(self, local: CloudData):
        baseline = self.store.baseline()
        return (
            compute_diff(baseline.entries, local.entries),
            compute_diff(baseline.content_types, local.content_types, delete_filter=_is_custom),
            compute_diff(baseline.media_items, local.media_items),
        )

    async def _pull(self, result: SyncResult) -> None:
        remote_modified = await self._api.get_last_modified()
        cursor = self.store.cursor
        if remote_modified is None or (cursor is not None and remote_modified <= cursor):
            return

        bundle = await self._api.get_bundle()
        local = self.store.snapshot()
        entry_diff, type_diff, media_diff = self._pending(local)
        # Untouched defaults on a device that never synced are not local edits
        type_diff.changed = [ct for ct in type_diff.changed if ct not in BUILTIN_CONTENT_TYPES]

        kept = sum(
            len(d.changed) + len(d.deleted_ids) for d in (entry_diff, type_diff, media_diff)
        )
        if kept:
            logger.info("Remote data is newer; keeping %d unpushed local change(s) on top", kept)

        content_types = _overlay(bundle.content_types or local.content_types, type_diff)
        self.store.replace(
            CloudData(
                entries=migrate_entries(_overlay(bundle.entries, entry_diff), content_types),
                content_types=content_types,
                media_items=_overlay(bundle.media_items, media_diff),
                categories=bundle.categories,
                last_modified=bundle.last_modified,
            )
        )
        self.store.set_baseline(bundle.entries, bundle.content_types, bundle.media_items)

        result.pulled = True
        result.last_modified = bundle.last_modified if bundle.last_modified is not None else remote_modified
        logger.debug("Pulled %d entries (remote lastModified=%s)", len(bundle.entries), remote_modified)

    async def _push(self, result: SyncResult) -> None:
        baseline = self.store.baseline()
        entry_diff, type_diff, media_diff = self._pending(self.store.snapshot())
        if entry_diff.is_empty and type_diff.is_empty and media_diff.is_empty:
            return

        known_entries = {e.id: e for e in baseline.entries}
        known_types = {ct.id: ct for ct in baseline.content_types}
        known_media = {m.id: m for m in baseline.media_items}

        batches = chunk_entries(entry_diff.changed, self.batch_size)
        payloads = build_push_payloads(entry_diff, type_diff, media_diff, self.batch_size)
        for index, (batch, payload) in enumerate(zip(batches, payloads)):
            last_modified = await self._api.push(payload)

            _advance(known_entries, batch, [])
            result.pushed += len(batch)
            if index == 0:
                _advance(known_types, type_diff.changed, [])
                _advance(known_media, media_diff.changed, [])
                result.pushed += len(type_diff.changed) + len(media_diff.changed)
            if index == len(payloads) - 1:
                _advance(known_entries, [], entry_diff.deleted_ids)
                _advance(known_types, [], type_diff.deleted_ids)
                _advance(known_media, [], media_diff.deleted_ids)
                result.deleted = (
                    len(entry_diff.deleted_ids) + len(type_diff.deleted_ids)
                    + len(media_diff.deleted_ids)
                )

            self.store.set_baseline(
                list(known_entries.values()), list(known_types.values()), list(known_media.values())
            )
            self.store.advance_cursor(last_modified)
            if last_modified is not None:
                result.last_modified = last_modified

    async def run_periodic(
        self,
        interval: float = DEFAULT_SYNC_INTERVAL,
        stop_event: Optional[asyncio.Event] = None,
    ) -> None:
        """Sync every ``interval`` seconds until ``stop_event`` is set."""
        stop_event = stop_event or asyncio.Event()
        while not stop_event.is_set():
            result = await self.sync()
            if result.errors:
                logger.info("Periodic sync failed: %s", "; ".join(result.errors))
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    # ------------------------------------------------------------------
    # Images and maintenance
    # ------------------------------------------------------------------

    async def upload_image(self, data: bytes, filename: str, content_type: str) -> str:
        """Upload an image and return the URL to embed in entry content."""
        url = await self._api.upload_image(data, filename, content_type)
        logger.info("Uploaded %s -> %s", filename, url)
        return url

    async def cleanup_images(self, confirm: bool = False) -> CleanupResult:
        """Delete stored images no entry or media item references.

        Deletion is permanent, so the caller must pass ``confirm=True``.
        Local edits are pushed first so references that exist only on this
        device are not collected. A cycle already in flight is waited for,
        then a fresh one runs, and no other cycle starts until the sweep is
        done.
        """
        if not confirm:
            raise ValueError("Image cleanup permanently deletes files; pass confirm=True")
        async with self._sync_lock:
            if self.is_logged_in:
                result = await self._run_cycle()
                if result.errors:
                    raise ChronologError(f"Sync before cleanup failed: {'; '.join(result.errors)}")
            cleanup = await self._api.cleanup_images()
        logger.info(
            "Image cleanup removed %d of %d images", cleanup.deleted_count, cleanup.total_images
        )
        return cleanup

    async def migrate_legacy(self) -> Dict[str, Any]:
        """Ask the backend to import legacy key-value data into its tables."""
        return await self._api.migrate()
