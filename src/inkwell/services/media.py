"""Client for the third-party image host.

The host speaks the Cloudinary REST dialect: uploads and deletions are
signed with the API secret, listings use HTTP basic auth against the admin
API. Only the three calls the application needs are implemented.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import arrow
import httpx

from inkwell.core.settings import settings

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_NOT_FOUND = 404

# Upload parameters that are sent but never signed.
_UNSIGNED_PARAMS = frozenset({"file", "api_key", "resource_type", "cloud_name"})


class MediaError(RuntimeError):
    """Base exception raised for media host failures."""


class MediaDisabledError(MediaError):
    """Raised when media operations are attempted while the host is not configured."""


@dataclass(frozen=True)
class MediaConfig:
    """Immutable configuration for media host operations."""

    enabled: bool
    base_url: str
    cloud_name: str | None
    api_key: str | None
    api_secret: str | None
    folder: str
    timeout_seconds: float


@dataclass(frozen=True)
class StoredImage:
    """One image held by the media host."""

    public_id: str
    secure_url: str
    created_at: datetime


def load_media_config() -> MediaConfig:
    """Build configuration object from global settings."""
    return MediaConfig(
        enabled=settings.media_configured,
        base_url=settings.media_base_url.rstrip("/"),
        cloud_name=settings.media_cloud_name,
        api_key=settings.media_api_key,
        api_secret=settings.media_api_secret,
        folder=settings.media_folder,
        timeout_seconds=float(settings.media_http_timeout_seconds),
    )


def sign_params(params: Mapping[str, Any], api_secret: str) -> str:
    """Return the SHA-1 request signature the host expects.

    Parameters are sorted by name and joined as ``key=value`` pairs with
    ``&``; the secret is appended before hashing.
    """
    payload = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key not in _UNSIGNED_PARAMS and params[key] not in (None, "")
    )
    return hashlib.sha1(f"{payload}{api_secret}".encode()).hexdigest()


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as err:
        raise MediaError(f"Media host returned a non-JSON body: {err}") from err
    if not isinstance(payload, dict):
        raise MediaError("Media host returned an unexpected JSON body")
    return payload


def _stored_image(payload: Mapping[str, Any]) -> StoredImage:
    try:
        return StoredImage(
            public_id=str(payload["public_id"]),
            secure_url=str(payload["secure_url"]),
            created_at=arrow.get(payload["created_at"]).datetime,
        )
    except (KeyError, TypeError, ValueError) as err:
        raise MediaError(f"Malformed image record from media host: {err}") from err


class MediaStore:
    """HTTP client wrapper for the image host."""

    def __init__(
        self,
        config: MediaConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_media_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled and bool(self.config.cloud_name)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise MediaDisabledError("Media host is not configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=f"{self.config.base_url}/{self.config.cloud_name}",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        signed = dict(params, timestamp=int(time.time()))
        signed["signature"] = sign_params(signed, self.config.api_secret or "")
        signed["api_key"] = self.config.api_key
        return signed

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = await self._ensure_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise MediaError(f"Media host request failed: {exc}") from exc
        if response.status_code >= 500:
            raise MediaError(f"Media host responded with {response.status_code}")
        return response

    async def upload(self, data: bytes, filename: str, content_type: str) -> StoredImage:
        """Store an image in the configured folder."""
        form = self._signed({"folder": self.config.folder})
        response = await self._request(
            "POST",
            "/image/upload",
            data=form,
            files={"file": (filename, data, content_type)},
        )
        if response.status_code != HTTP_OK:
            raise MediaError(f"Upload rejected by media host ({response.status_code})")
        image = _stored_image(_json_body(response))
        logger.info("Uploaded image %s", image.public_id)
        return image

    async def destroy(self, public_id: str) -> bool:
        """Delete an image; return False if the host did not have it."""
        form = self._signed({"public_id": public_id})
        response = await self._request("POST", "/image/destroy", data=form)
        if response.status_code == HTTP_NOT_FOUND:
            return False
        if response.status_code != HTTP_OK:
            raise MediaError(f"Delete rejected by media host ({response.status_code})")
        return _json_body(response).get("result") == "ok"

    async def list_images(
        self,
        prefix: str | None = None,
        max_results: int = 500,
        cursor: str | None = None,
    ) -> tuple[list[StoredImage], str | None]:
        """Return one page of stored images under ``prefix`` and the next cursor."""
        params: dict[str, Any] = {
            "type": "upload",
            "prefix": prefix if prefix is not None else f"{self.config.folder}/",
            "max_results": max_results,
        }
        if cursor:
            params["next_cursor"] = cursor
        response = await self._request(
            "GET",
            "/resources/image/upload",
            params=params,
            auth=(self.config.api_key or "", self.config.api_secret or ""),
        )
        if response.status_code != HTTP_OK:
            raise MediaError(f"Listing rejected by media host ({response.status_code})")
        payload = _json_body(response)
        images = [_stored_image(item) for item in payload.get("resources", [])]
        return images, payload.get("next_cursor")

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _MediaStoreSingleton:
    """Singleton wrapper for MediaStore."""

    _instance: MediaStore | None = None

    @classmethod
    def get_instance(cls) -> MediaStore:
        """Get or create the singleton MediaStore instance."""
        if cls._instance is None:
            cls._instance = MediaStore()
        return cls._instance


def get_media_store() -> MediaStore:
    """Return a singleton media store instance."""
    return _MediaStoreSingleton.get_instance()
