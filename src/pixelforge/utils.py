"""Shared utility functions for PixelForge.

Contains helpers used across multiple modules: output normalization,
geometry parsing, MIME sniffing, and binary fetch into
:class:`~pixelforge.models.EncodedImage`.
"""

from __future__ import annotations

import io
from typing import Any

import httpx
from PIL import Image, UnidentifiedImageError

from pixelforge.constants import MAX_GENERATED_SIDE, MAX_QUANTITY
from pixelforge.errors import GenerationError
from pixelforge.models import EncodedImage


def clamp_quantity(quantity: int | None, maximum: int = MAX_QUANTITY) -> int:
    """Clamp a requested image count to the inclusive range ``[1, maximum]``."""
    if quantity is None:
        return 1
    return max(1, min(int(quantity), maximum))


def parse_dimensions(dimensions: str | None) -> tuple[int, int] | None:
    """Parse a ``"WxH"`` string.

    Returns:
        ``(width, height)`` or ``None`` when the string is missing or
        either side is not a positive integer.
    """
    if not dimensions:
        return None
    pieces = dimensions.lower().split("x")
    if len(pieces) != 2:
        return None
    try:
        width, height = int(pieces[0].strip()), int(pieces[1].strip())
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return width, height


def scale_to_max_side(
    width: int, height: int, max_side: int = MAX_GENERATED_SIDE
) -> tuple[int, int]:
    """Scale ``(width, height)`` so the larger side equals *max_side*."""
    scale = max_side / max(width, height)
    return round(width * scale), round(height * scale)


def normalize_output_urls(output: Any) -> list[str]:
    """Normalize a provider ``output`` field to an ordered list of URLs.

    Raises:
        GenerationError: If the output is empty or not a string/list.
    """
    if isinstance(output, str):
        urls = [output]
    elif isinstance(output, (list, tuple)):
        urls = [str(item) for item in output if item]
    else:
        raise GenerationError(
            f"Unexpected output format from provider: {type(output).__name__}"
        )
    if not urls:
        raise GenerationError("Provider returned no output")
    return urls


def join_text_output(output: Any) -> str:
    """Concatenate a text model's output (string or list of chunks)."""
    if output is None:
        return ""
    if isinstance(output, (list, tuple)):
        return "".join(str(chunk) for chunk in output)
    return str(output)


def sniff_mime_type(data: bytes) -> str | None:
    """Detect an image MIME type from its bytes using Pillow.

    Returns:
        The MIME type (e.g. ``"image/png"``) or ``None`` when Pillow does
        not recognize the payload.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError):
        return None
    if not fmt:
        return None
    return Image.MIME.get(fmt.upper())


async def fetch_image(
    client: httpx.AsyncClient,
    url: str,
    default_mime: str = "image/png",
) -> EncodedImage:
    """Download *url* and wrap its bytes as an :class:`EncodedImage`.

    The MIME type comes from the response ``Content-Type`` header, then
    from sniffing the bytes, then *default_mime*.  Data URLs are decoded
    in place without a network call.

    Raises:
        GenerationError: If the download fails or returns no bytes.
    """
    if url.startswith("data:"):
        try:
            return EncodedImage.from_data_url(url)
        except ValueError as exc:
            raise GenerationError(f"Invalid inline image output: {exc}") from exc

    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise GenerationError(f"Failed to fetch generated image: {exc}") from exc

    data = response.content
    if not data:
        raise GenerationError(f"Generated image at {url} is empty")

    header = response.headers.get("content-type", "").split(";", 1)[0].strip()
    if header.startswith("image/"):
        mime = header
    else:
        mime = sniff_mime_type(data) or default_mime
    return EncodedImage(data=data, mime_type=mime)
