import re
import time
from typing import Optional
from urllib.parse import unquote, urlparse
import httpx
from loguru import logger
from oncoshare.config import get_settings
from oncoshare.exceptions import UpstreamFailure

settings = get_settings()

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def object_key(user_id: int, folder: str, filename: str, timestamp_ms: Optional[int] = None) -> str:
    """Deterministic storage key: user_{id}/{folder}/{timestamp}-{sanitized name}."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    safe_name = _UNSAFE_CHARS.sub("_", filename or "file")
    return f"user_{user_id}/{folder}/{timestamp_ms}-{safe_name}"


class StorageService:
    """Client for a Supabase-Storage compatible object store (single bucket)."""

    def __init__(self, base_url: str = None, api_key: str = None, bucket: str = None,
                 timeout: float = None, transport: httpx.AsyncBaseTransport = None):
        self.base_url = (base_url if base_url is not None else settings.storage_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.storage_key
        self.bucket = bucket or settings.storage_bucket
        self.timeout = timeout or settings.storage_timeout_seconds
        self.transport = transport

    def _headers(self, extra: dict = None) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "apikey": self.api_key,
        }
        if extra:
            headers.update(extra)
        return headers

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def path_from_url(self, url: Optional[str]) -> Optional[str]:
        """
        Resolve the object key from a public URL. Returns None for URLs that do
        not point into this bucket (e.g. an avatar hosted elsewhere).
        """
        if not url:
            return None
        parsed = urlparse(url)
        if self.base_url and parsed.netloc and parsed.netloc != urlparse(self.base_url).netloc:
            return None
        parts = [unquote(p) for p in parsed.path.split("/") if p]
        if self.bucket not in parts:
            return None
        index = parts.index(self.bucket)
        key = "/".join(parts[index + 1:])
        return key or None

    async def upload(self, path: str, content: bytes, content_type: str = None) -> str:
        """Upload to an explicit key (no upsert). Returns the public URL."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
                    headers=self._headers({
                        "Content-Type": content_type or "application/octet-stream",
                        "x-upsert": "false",
                    }),
                    content=content,
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Storage upload failed for {path}: {e}")
            raise UpstreamFailure("File upload failed", {"path": path}) from e
        return self.public_url(path)

    async def remove(self, paths: list[str]) -> None:
        """Remove objects by key. Keys that no longer exist are not an error."""
        if not paths:
            return
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    "DELETE",
                    f"{self.base_url}/storage/v1/object/{self.bucket}",
                    headers=self._headers({"Content-Type": "application/json"}),
                    json={"prefixes": paths},
                )
                if response.status_code == 404:
                    return
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise UpstreamFailure("File removal failed", {"paths": paths}) from e


storage_service = StorageService()
