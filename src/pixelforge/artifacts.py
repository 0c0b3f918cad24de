"""Artifact pipeline: hand generated images to durable storage.

Images arrive fully in memory as :class:`~pixelforge.models.EncodedImage`.
Each one gets a collision-resistant storage key derived from its owner,
its asset type and its MIME subtype, and is written through a
:class:`~pixelforge.collaborators.BlobStore`.
"""

from __future__ import annotations

import re
import secrets
import string
import time
from pathlib import Path

import httpx

from pixelforge.collaborators import BlobStore
from pixelforge.errors import PixelForgeError, StorageError
from pixelforge.logging import get_logger
from pixelforge.models import EncodedImage, NamingContext
from pixelforge.utils import fetch_image

logger = get_logger("artifacts")

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_UNSAFE_LABEL = re.compile(r"[^A-Za-z0-9_-]+")


def _random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def safe_label(label: str) -> str:
    """Reduce *label* to characters that are safe in a storage key."""
    return _UNSAFE_LABEL.sub("_", label).strip("_") or "sheet"


def build_storage_key(naming: NamingContext, extension: str) -> str:
    """Return ``"{type}s/{owner}/{timestamp_ms}-{random}.{ext}"``."""
    return (
        f"{naming.asset_type}s/{naming.owner_id}/"
        f"{_timestamp_ms()}-{_random_suffix()}.{extension}"
    )


def build_spritesheet_key(naming: NamingContext) -> str:
    """Return ``"animations/{owner}/{project}/{timestamp_ms}-{random}-{label}.png"``."""
    project = naming.project_id or "unassigned"
    label = safe_label(naming.label or "spritesheet")
    return (
        f"animations/{naming.owner_id}/{project}/"
        f"{_timestamp_ms()}-{_random_suffix()}-{label}.png"
    )


class ArtifactPipeline:
    """Persist generated images and return their durable URLs.

    Args:
        blob_store: Durable storage backend.
        http_client: Client used by :meth:`persist_remote` to download
            provider-hosted outputs.  A short-lived client is created
            per call when omitted.
    """

    def __init__(
        self, blob_store: BlobStore, http_client: httpx.AsyncClient | None = None
    ) -> None:
        self._store = blob_store
        self._http = http_client

    async def persist(self, image: EncodedImage, naming: NamingContext) -> str:
        """Write *image* to storage.

        Returns:
            The durable URL reported by the blob store.

        Raises:
            StorageError: If the write fails.
        """
        key = build_storage_key(naming, image.extension)
        try:
            url = await self._store.put(key, image.data, image.mime_type)
        except StorageError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise StorageError(f"Failed to store {key}: {exc}") from exc
        logger.info("Stored %s (%d bytes)", key, len(image.data))
        return url

    async def persist_all(
        self, images: list[EncodedImage], naming: NamingContext
    ) -> list[str]:
        """Persist *images* sequentially, preserving order.

        A failed write is logged and replaced by the image's data URL so
        the caller still receives one URL per image.
        """
        urls: list[str] = []
        for index, image in enumerate(images, start=1):
            try:
                urls.append(await self.persist(image, naming))
            except StorageError as exc:
                logger.error(
                    "Upload of image %d/%d failed, returning inline data: %s",
                    index,
                    len(images),
                    exc,
                )
                urls.append(image.to_data_url())
        return urls

    async def persist_remote(self, url: str, naming: NamingContext) -> str:
        """Download a provider-hosted spritesheet and store it as PNG.

        Raises:
            StorageError: If the download or the write fails.
        """
        try:
            if self._http is not None:
                image = await fetch_image(self._http, url)
            else:
                async with httpx.AsyncClient() as client:
                    image = await fetch_image(client, url)
        except PixelForgeError as exc:
            raise StorageError(f"Failed to download {url}: {exc}") from exc

        key = build_spritesheet_key(naming)
        try:
            stored = await self._store.put(key, image.data, "image/png")
        except StorageError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise StorageError(f"Failed to store {key}: {exc}") from exc
        logger.info("Stored spritesheet %s", key)
        return stored


class LocalBlobStore:
    """Filesystem :class:`~pixelforge.collaborators.BlobStore`.

    Args:
        root: Directory that keys are resolved against.
        base_url: Optional public prefix for returned URLs.  ``file://``
            URIs are returned when omitted.
    """

    def __init__(self, root: str | Path, base_url: str | None = None) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/") if base_url else None

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        target = (self.root / key).resolve()
        if self.root.resolve() not in target.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {target}: {exc}") from exc
        logger.debug("Wrote %s (%s)", target, content_type)
        if self.base_url:
            return f"{self.base_url}/{key}"
        return target.as_uri()
