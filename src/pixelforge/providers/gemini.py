"""Single-call image provider backed by the Gemini ``generateContent`` API.

Each image is one synchronous request; the response carries the image
inline as base64, so there is no polling and no separate fetch step.
"""

from __future__ import annotations

from typing import Any

import httpx

from pixelforge.constants import GEMINI_IMAGE_MODEL
from pixelforge.errors import GenerationError, ProviderError
from pixelforge.logging import get_logger
from pixelforge.models import (
    AnimationFramesRequest,
    EncodedImage,
    GenerationRequest,
    ProviderName,
)
from pixelforge.prompts import build_animation_frame_prompt, build_prompt
from pixelforge.providers._base import GenerationStage, ImageProvider, StageTracker
from pixelforge.utils import clamp_quantity

logger = get_logger("providers.gemini")

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def variation_suffix(index: int) -> str:
    """Prompt suffix nudging the model away from earlier images in a batch."""
    if index <= 0:
        return ""
    return f" Variation {index + 1}, slightly different from previous versions."


def inline_part(image: str | None) -> dict[str, Any] | None:
    """Convert a data URL into an ``inlineData`` content part.

    Remote URLs and malformed data URLs yield ``None``; the API only
    accepts inline bytes.
    """
    if not image or not image.startswith("data:"):
        return None
    try:
        decoded = EncodedImage.from_data_url(image)
    except ValueError:
        return None
    _, _, payload = image.partition(",")
    return {"inlineData": {"mimeType": decoded.mime_type, "data": payload}}


def extract_first_image(body: dict[str, Any]) -> EncodedImage | None:
    """Return the first inline image part of a ``generateContent`` response."""
    candidates = body.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    for part in parts:
        inline = part.get("inlineData") or {}
        mime = inline.get("mimeType") or ""
        if mime.startswith("image/") and inline.get("data"):
            return EncodedImage.from_data_url(f"data:{mime};base64,{inline['data']}")
    return None


class GeminiProvider(ImageProvider):
    """Image generation through one ``generateContent`` call per image."""

    name = ProviderName.GEMINI.value

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        base_url: str = DEFAULT_BASE_URL,
        model: str = GEMINI_IMAGE_MODEL,
    ) -> None:
        self._api_key = api_key
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._model = model

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    async def _generate_content(self, parts: list[dict[str, Any]]) -> dict[str, Any]:
        body = {
            "contents": [{"parts": parts}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        try:
            response = await self._http.post(
                self.endpoint,
                params={"key": self._api_key},
                json=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Gemini request failed: {exc}") from exc

        if not response.is_success:
            text = response.text
            raise ProviderError(
                f"Gemini API error: {response.status_code} - {text}",
                status_code=response.status_code,
                body=text,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(f"Malformed Gemini response: {exc}") from exc

    def _request_parts(self, prompt: str, request: GenerationRequest) -> list[dict[str, Any]]:
        parts: list[dict[str, Any]] = [{"text": prompt}]
        for image in (request.reference_image, request.pose_image):
            part = inline_part(image)
            if part is not None:
                parts.append(part)
        return parts

    async def generate_images(
        self, request: GenerationRequest, tracker: StageTracker
    ) -> list[EncodedImage]:
        prompt = build_prompt(request)
        quantity = clamp_quantity(request.quantity)
        images: list[EncodedImage] = []
        for index in range(quantity):
            tracker.enter(GenerationStage.GENERATING)
            logger.info(
                "Requesting image %d/%d from %s",
                index + 1,
                quantity,
                self._model,
                extra={"provider": self.name, "model": self._model},
            )
            body = await self._generate_content(
                self._request_parts(prompt + variation_suffix(index), request)
            )
            tracker.enter(GenerationStage.FETCHING_OUTPUTS)
            image = extract_first_image(body)
            if image is not None:
                images.append(image)
            else:
                logger.warning("Response %d carried no image part", index + 1)

        if not images:
            raise GenerationError("No images generated")
        return images

    async def generate_frames(
        self, request: AnimationFramesRequest, tracker: StageTracker
    ) -> list[EncodedImage]:
        character = inline_part(request.character_image)
        if character is None:
            raise GenerationError("Invalid character image format")

        frames: list[EncodedImage] = []
        total = request.total_frames
        for index in range(total):
            tracker.enter(GenerationStage.GENERATING)
            logger.info("Generating frame %d/%d with Gemini", index + 1, total)
            prompt = build_animation_frame_prompt(request, index, total)
            try:
                body = await self._generate_content([{"text": prompt}, character])
            except ProviderError as exc:
                raise GenerationError(
                    f"Failed to generate frame {index + 1}: {exc}"
                ) from exc
            tracker.enter(GenerationStage.FETCHING_OUTPUTS)
            frame = extract_first_image(body)
            if frame is None:
                raise GenerationError(f"No image generated for frame {index + 1}")
            frames.append(frame)
        return frames
