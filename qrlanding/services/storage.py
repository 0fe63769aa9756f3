"""Object storage client for uploaded logos."""

import logging
from typing import Any

import aiohttp

from qrlanding.config import settings
from qrlanding.errors import StorageError

logger = logging.getLogger(__name__)

ALLOWED_LOGO_TYPES = ("image/png", "image/jpeg", "image/jpg", "image/svg+xml")


class StorageClient:
    """Async client for a Supabase-style storage REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        bucket: str | None = None,
    ) -> None:
        self.base_url = (base_url or settings.storage_url).rstrip("/")
        self.service_key = service_key if service_key is not None else settings.storage_service_key
        self.bucket = bucket or settings.logo_bucket
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "StorageClient":
        self._session = aiohttp.ClientSession(
            headers={
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
            }
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._session:
            await self._session.close()

    def _build_url(self, path: str) -> str:
        """Build full URL for API endpoint."""
        return f"{self.base_url}/storage/v1{path}"

    def public_url(self, path: str) -> str:
        """Public URL of an object in the bucket."""
        return self._build_url(f"/object/public/{self.bucket}/{path}")

    def path_from_public_url(self, url: str | None) -> str | None:
        """Recover the object path from a public URL, or None if foreign."""
        if not url:
            return None
        parts = url.split("/")
        if self.bucket not in parts:
            return None
        index = parts.index(self.bucket)
        return "/".join(parts[index + 1 :]) or None

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store an object and return its public URL."""
        if not self._session:
            raise StorageError("Session not initialized")

        url = self._build_url(f"/object/{self.bucket}/{path}")
        headers = {
            "Content-Type": content_type,
            "Cache-Control": "3600",
            "x-upsert": "false",
        }

        async with self._session.post(url, data=data, headers=headers) as resp:
            if resp.status not in (200, 201):
                body = await resp.text()
                raise StorageError(f"Upload failed with status {resp.status}: {body}")

        logger.info(f"Uploaded {path} ({len(data)} bytes) to bucket {self.bucket}")
        return self.public_url(path)

    async def remove(self, path: str) -> bool:
        """Delete an object. Returns True if the storage API accepted it."""
        if not self._session:
            raise StorageError("Session not initialized")

        url = self._build_url(f"/object/{self.bucket}")
        async with self._session.delete(url, json={"prefixes": [path]}) as resp:
            if resp.status != 200:
                logger.warning(f"Remove of {path} failed with status {resp.status}")
                return False

        logger.info(f"Removed {path} from bucket {self.bucket}")
        return True

    async def download(self, url: str) -> bytes:
        """Fetch an object by its public URL."""
        if not self._session:
            raise StorageError("Session not initialized")

        async with self._session.get(url) as resp:
            if resp.status != 200:
                raise StorageError(f"Download failed with status {resp.status}")
            return await resp.read()

    async def ensure_bucket(self) -> bool:
        """Create the logo bucket if missing. Returns True if it was created."""
        if not self._session:
            raise StorageError("Session not initialized")

        async with self._session.get(self._build_url("/bucket")) as resp:
            if resp.status != 200:
                raise StorageError(f"List buckets failed with status {resp.status}")
            buckets = await resp.json()

        if any(b.get("name") == self.bucket for b in buckets):
            return False

        payload = {
            "id": self.bucket,
            "name": self.bucket,
            "public": True,
            "file_size_limit": settings.logo_max_bytes,
            "allowed_mime_types": list(ALLOWED_LOGO_TYPES),
        }
        async with self._session.post(self._build_url("/bucket"), json=payload) as resp:
            if resp.status not in (200, 201):
                body = await resp.text()
                if "already exists" in body:
                    return False
                raise StorageError(f"Create bucket failed with status {resp.status}: {body}")

        logger.info(f"Created storage bucket {self.bucket}")
        return True
