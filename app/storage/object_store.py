from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Mapping, Protocol

import aiofiles
import aiofiles.os
import httpx

from app.core.config import Settings
from app.core.errors import InfrastructureError

logger = logging.getLogger(__name__)


class StorageError(InfrastructureError):
    """Raised when an object could not be stored."""


@dataclass(slots=True, frozen=True)
class StoredObject:
    url: str
    key: str


class ObjectStorage(Protocol):
    async def put(self, key: str, data: bytes, mime_type: str) -> StoredObject:
        ...


def _normalize_key(key: str) -> str:
    path = PurePosixPath(key.lstrip("/"))
    if not path.parts or any(part in ("", ".", "..") for part in path.parts):
        raise StorageError(f"Invalid storage key: {key!r}")
    return path.as_posix()


class LocalObjectStorage:
    """Store objects below a directory served under ``public_url``."""

    def __init__(self, root: str | Path, *, public_url: str = "/uploads") -> None:
        self._root = Path(root)
        self._public_url = public_url.rstrip("/")

    async def put(self, key: str, data: bytes, mime_type: str) -> StoredObject:
        normalized = _normalize_key(key)
        target = self._root / normalized
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as out_file:
                await out_file.write(data)
        except OSError as exc:
            raise StorageError(f"Could not write {normalized}: {exc}") from exc
        logger.info("Stored %s (%s, %d bytes)", normalized, mime_type, len(data))
        return StoredObject(url=f"{self._public_url}/{normalized}", key=normalized)


class HttpObjectStorage:
    """Upload objects to an HTTP storage gateway.

    The gateway receives a multipart form with ``key`` and ``file`` and answers
    with a JSON document carrying the public ``url`` of the stored object.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    async def put(self, key: str, data: bytes, mime_type: str) -> StoredObject:
        normalized = _normalize_key(key)
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        files = {"file": (PurePosixPath(normalized).name, data, mime_type)}

        try:
            response = await self._post(headers=headers, data={"key": normalized}, files=files)
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage upload failed: {exc}") from exc

        if response.status_code >= 400:
            raise StorageError(f"Storage upload failed with status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise StorageError("Storage gateway returned an invalid response") from exc
        url = payload.get("url") if isinstance(payload, Mapping) else None
        if not url:
            raise StorageError("Storage gateway response has no url")
        return StoredObject(url=str(url), key=str(payload.get("key") or normalized))

    async def _post(self, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self._endpoint, timeout=self._timeout, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self._endpoint, **kwargs)


def create_object_storage(settings: Settings) -> ObjectStorage:
    if settings.storage_backend == "http":
        if not settings.storage_endpoint:
            raise ValueError("STORAGE_ENDPOINT is required for the http storage backend")
        return HttpObjectStorage(
            settings.storage_endpoint,
            api_key=settings.storage_api_key,
            timeout=settings.storage_timeout,
        )
    if settings.storage_backend == "local":
        return LocalObjectStorage(settings.storage_dir, public_url=settings.storage_public_url)
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")
