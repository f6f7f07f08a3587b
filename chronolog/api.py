"""Async HTTP client for the chronolog backend.

Thin wrapper over ``httpx.AsyncClient`` that speaks the JSON wire protocol
and maps HTTP failures onto the chronolog exception hierarchy. No sync
logic lives here.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from chronolog.errors import AuthError, NetworkError, NotFoundError, ValidationError
from chronolog.types import CleanupResult, CloudData

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def validate_backend_url(url: str) -> str:
    """Accept https URLs, and plain http only for localhost development.

    Returns the URL without a trailing slash. Raises ValidationError otherwise.
    """
    parsed = urlparse(url)
    if parsed.scheme == "https" and parsed.hostname:
        return url.rstrip("/")
    if parsed.scheme == "http" and parsed.hostname in ("localhost", "127.0.0.1"):
        return url.rstrip("/")
    raise ValidationError(
        f"Refusing backend URL {url!r}: use https:// or http://localhost for development"
    )


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or default
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default


def raise_for_response(response: httpx.Response) -> None:
    """Raise the chronolog error matching a failed response."""
    if response.is_success:
        return
    status = response.status_code
    if status == 401:
        raise AuthError(_error_message(response, "Unauthorized"))
    if status == 404:
        raise NotFoundError(_error_message(response, "Not found"))
    if status in (400, 413, 422):
        raise ValidationError(_error_message(response, "Invalid request"))
    raise NetworkError(_error_message(response, f"HTTP {status}"), status_code=status)


class ChronologAPI:
    """Client for one backend.

    Args:
        backend_url: Base URL of the backend (``https://...``).
        token: Bearer token for protected routes, if logged in.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests use MockTransport or
            ASGITransport).
    """

    def __init__(
        self,
        backend_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.backend_url = backend_url.rstrip("/")
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=self.backend_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ChronologAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _headers(self, auth: bool = True) -> Dict[str, str]:
        headers = {}
        if auth:
            if not self.token:
                raise AuthError("Not logged in")
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, *, auth: bool = True, **kwargs) -> Any:
        headers = {**self._headers(auth), **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request to {path} timed out") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Connection failed: {e}") from e

        raise_for_response(response)
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Backend returned invalid JSON for {path}") from e

    # === Auth ===

    async def authenticate(self, password: str) -> Dict[str, Any]:
        """Exchange the shared password for a new device token."""
        result = await self._request("POST", "/api/auth", auth=False, json={"password": password})
        if not isinstance(result, dict) or not result.get("token"):
            raise NetworkError("Backend returned no token")
        return result

    async def revoke(self) -> None:
        """Delete this device's token on the backend."""
        await self._request("POST", "/api/auth/logout")

    # === Data ===

    async def get_last_modified(self) -> Optional[int]:
        result = await self._request("GET", "/api/data", auth=False, params={"meta": "true"})
        value = result.get("lastModified") if isinstance(result, dict) else None
        return int(value) if value is not None else None

    async def get_bundle(self) -> CloudData:
        """Fetch the full remote bundle."""
        result = await self._request("GET", "/api/data", auth=False)
        return CloudData.from_dict(result)

    async def push(self, payload: Dict[str, Any]) -> Optional[int]:
        """Upsert/delete records. Returns the new remote lastModified."""
        result = await self._request("POST", "/api/data", json=payload)
        return result.get("lastModified") if isinstance(result, dict) else None

    async def migrate(self) -> Dict[str, Any]:
        return await self._request("POST", "/api/migrate")

    # === Images ===

    async def upload_image(self, data: bytes, filename: str, content_type: str) -> str:
        result = await self._request(
            "POST",
            "/api/upload",
            files={"file": (filename, data, content_type)},
        )
        url = result.get("url") if isinstance(result, dict) else None
        if not url:
            raise NetworkError("Upload returned no URL")
        return url

    async def cleanup_images(self) -> CleanupResult:
        result = await self._request("POST", "/api/cleanup")
        return CleanupResult(
            deleted=list(result.get("deleted", [])),
            kept=list(result.get("kept", [])),
            total_images=int(result.get("totalImages", 0)),
            used_images=int(result.get("usedImages", 0)),
        )
