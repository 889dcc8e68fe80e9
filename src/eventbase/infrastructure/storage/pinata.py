"""Pinata (IPFS) content store client."""

import logging
import re
import time
from typing import Any

import httpx

from eventbase.core.config import Settings, get_settings
from eventbase.core.errors import InvalidInputError, StorageError

logger = logging.getLogger(__name__)


def validate_image_upload(
    data: bytes,
    content_type: str,
    settings: Settings | None = None,
) -> None:
    """Validate an image before it is handed to the content store.

    Args:
        data: Raw file bytes
        content_type: Declared MIME type
        settings: Settings override

    Raises:
        InvalidInputError: Empty file, disallowed type, or larger than the limit
    """
    settings = settings or get_settings()

    if not data:
        raise InvalidInputError("No file uploaded")
    if content_type not in settings.allowed_image_types:
        raise InvalidInputError(
            "Invalid file type. Only images are allowed (JPEG, PNG, GIF, WebP)"
        )
    if len(data) > settings.upload_max_bytes:
        max_mb = settings.upload_max_bytes // (1024 * 1024)
        raise InvalidInputError(f"File size too large. Maximum size is {max_mb}MB")


def safe_filename(filename: str) -> str:
    """Replace unsafe characters and prefix a millisecond timestamp."""
    cleaned = re.sub(r"[^a-zA-Z0-9.-]", "_", filename or "upload")
    return f"{int(time.time() * 1000)}_{cleaned}"


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def build_event_metadata(
    image_url: str | None,
    category: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Compose the metadata document stored in a ticket's ``metadata`` field."""
    metadata: dict[str, Any] = {key: value for key, value in extra.items() if value is not None}
    if image_url:
        metadata["image"] = image_url
    if category:
        metadata["category"] = category
    return metadata


class PinataContentStore:
    """Uploads binaries and JSON documents to IPFS through Pinata.

    Callers must run :func:`validate_image_upload` first; this client does not
    re-check size or type.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=60.0)
        return self._http_client

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.settings.pinata_jwt}"}

    def gateway_url(self, ipfs_hash: str) -> str:
        """Public gateway URL for a pinned CID."""
        return f"https://{self.settings.pinata_gateway}/ipfs/{ipfs_hash}"

    async def _pin(self, path: str, **request_kwargs: Any) -> str:
        client = await self._get_http_client()
        url = f"{self.settings.pinata_api_url}{path}"
        try:
            response = await client.post(url, headers=self._headers, **request_kwargs)
        except httpx.HTTPError as e:
            raise StorageError(f"Pinata request failed: {e}") from e

        body = _json_object(response)
        if response.status_code >= 400:
            detail = body.get("error") or response.text or "Unknown error"
            raise StorageError(f"Pinata upload failed: {detail}")

        ipfs_hash = body.get("IpfsHash")
        if not ipfs_hash:
            raise StorageError("Pinata response missing IpfsHash")

        url = self.gateway_url(ipfs_hash)
        logger.info(f"Pinned {path} -> {url}")
        return url

    async def upload_binary(
        self,
        data: bytes,
        content_type: str,
        filename: str = "upload",
    ) -> str:
        """Pin a binary file.

        Args:
            data: File contents
            content_type: MIME type
            filename: Original filename (sanitised before upload)

        Returns:
            Gateway URL of the pinned file

        Raises:
            StorageError: Transport error or non-2xx response
        """
        files = {"file": (safe_filename(filename), data, content_type)}
        return await self._pin("/pinning/pinFileToIPFS", files=files)

    async def upload_json(self, document: dict[str, Any]) -> str:
        """Pin a JSON document and return its gateway URL."""
        return await self._pin("/pinning/pinJSONToIPFS", json={"pinataContent": document})

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


_content_store: PinataContentStore | None = None


def get_content_store() -> PinataContentStore:
    """Get or create the process-wide content store."""
    global _content_store
    if _content_store is None:
        _content_store = PinataContentStore()
    return _content_store


def reset_content_store() -> None:
    """Reset content store singleton (for testing)."""
    global _content_store
    _content_store = None
