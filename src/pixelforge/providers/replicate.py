"""Polling image provider backed by a Replicate-style prediction API.

Every generation is a prediction job driven through
:class:`~pixelforge.providers.prediction.PredictionClient`.  Prompts are
refined by the text model first; pose-guided requests are routed to an
image-edit model instead of the text-to-image model.
"""

from __future__ import annotations

from typing import Any

import httpx

from pixelforge.constants import (
    ANIMATION_FRAME_SIDE,
    ANIMATION_SHEET_MODEL,
    FALLBACK_SPRITE_SIDE,
    IMAGE_EDIT_MODEL,
    TEXT_TO_IMAGE_MODEL,
)
from pixelforge.errors import GenerationError
from pixelforge.logging import get_logger
from pixelforge.models import (
    AnimationFramesRequest,
    DirectAnimationRequest,
    EncodedImage,
    GenerationKind,
    GenerationRequest,
    ProviderName,
)
from pixelforge.prompts import build_animation_frame_prompt, get_image_dimensions
from pixelforge.providers._base import GenerationStage, ImageProvider, StageTracker
from pixelforge.providers.prediction import PredictionClient
from pixelforge.refinement import PromptRefiner
from pixelforge.utils import (
    clamp_quantity,
    fetch_image,
    normalize_output_urls,
    parse_dimensions,
    scale_to_max_side,
)

logger = get_logger("providers.replicate")


def resolve_target_size(request: GenerationRequest) -> tuple[int, int]:
    """Compute the text-to-image width and height for *request*.

    Explicit ``dimensions`` win; otherwise the aspect ratio's size is
    scaled so its larger side is 384 pixels; otherwise 128×128.
    """
    explicit = parse_dimensions(request.dimensions)
    if explicit is not None:
        return explicit
    if request.aspect_ratio:
        return scale_to_max_side(*get_image_dimensions(request.aspect_ratio))
    return FALLBACK_SPRITE_SIDE, FALLBACK_SPRITE_SIDE


class ReplicateProvider(ImageProvider):
    """Image generation through long-running prediction jobs.

    Implements the :class:`~pixelforge.providers.ImageProvider` interface
    and adds the direct animation-sheet path, which only this backend
    supports.
    """

    name = ProviderName.REPLICATE.value

    def __init__(
        self,
        api_token: str,
        client: PredictionClient,
        http_client: httpx.AsyncClient,
        refiner: PromptRefiner | None = None,
        frame_model: str | None = None,
        text_to_image_model: str = TEXT_TO_IMAGE_MODEL,
        edit_model: str = IMAGE_EDIT_MODEL,
        animation_model: str = ANIMATION_SHEET_MODEL,
    ) -> None:
        """Initialize the provider.

        Args:
            api_token: Credential charged for every job.
            client: Shared prediction client.
            http_client: Client used to download output images.
            refiner: Prompt refinement stage; built from *client* if omitted.
            frame_model: Model used for frame-extension requests.  Falls
                back to the text-to-image model.
            text_to_image_model: Standard sprite/scene model.
            edit_model: Pose-guided image-edit model.
            animation_model: Animation-sheet model.
        """
        self._api_token = api_token
        self._client = client
        self._http = http_client
        self._refiner = refiner or PromptRefiner(client)
        self._frame_model = frame_model or text_to_image_model
        self._text_to_image_model = text_to_image_model
        self._edit_model = edit_model
        self._animation_model = animation_model

    # -- gateway calls ------------------------------------------------------

    async def edit_image(self, prompt: str, pose_image: str) -> list[str]:
        """Run the pose-guided image-edit model.

        Returns:
            Output URLs; a lone string output is wrapped in a list.
        """
        payload = {
            "prompt": prompt,
            "image": pose_image,
            "aspect_ratio": "match_input_image",
            "output_format": "webp",
            "output_quality": 95,
            "go_fast": True,
            "disable_safety_checker": True,
        }
        output = await self._client.submit_and_await(
            self._api_token, self._edit_model, payload
        )
        return normalize_output_urls(output)

    def build_text_to_image_input(
        self, prompt: str, request: GenerationRequest
    ) -> dict[str, Any]:
        """Build the text-to-image model input for *request*."""
        width, height = resolve_target_size(request)
        payload: dict[str, Any] = {
            "prompt": prompt,
            "width": width,
            "height": height,
            "num_images": clamp_quantity(request.quantity),
            "style": request.style or "default",
            "remove_bg": request.remove_bg,
            "tile_x": request.tile_x,
            "tile_y": request.tile_y,
        }
        if request.reference_image:
            payload["input_image"] = request.reference_image
        return payload

    async def _fetch_all(
        self, urls: list[str], default_mime: str, tracker: StageTracker
    ) -> list[EncodedImage]:
        tracker.enter(GenerationStage.FETCHING_OUTPUTS)
        images: list[EncodedImage] = []
        for url in urls:
            images.append(await fetch_image(self._http, url, default_mime))
        return images

    # -- ImageProvider ------------------------------------------------------

    async def generate_images(
        self, request: GenerationRequest, tracker: StageTracker
    ) -> list[EncodedImage]:
        tracker.enter(GenerationStage.REFINING_PROMPT)
        prompt = await self._refiner.refine(request.prompt, request, self._api_token)

        tracker.enter(GenerationStage.GENERATING)
        if request.pose_image:
            logger.info("Pose image supplied; using %s", self._edit_model)
            urls = await self.edit_image(prompt, request.pose_image)
            images = await self._fetch_all(urls, "image/webp", tracker)
        else:
            logger.info("Using standard model %s", self._text_to_image_model)
            output = await self._client.submit_and_await(
                self._api_token,
                self._text_to_image_model,
                self.build_text_to_image_input(prompt, request),
            )
            urls = normalize_output_urls(output)
            images = await self._fetch_all(urls, "image/png", tracker)

        if not images:
            raise GenerationError("No images generated")
        return images

    async def generate_frames(
        self, request: AnimationFramesRequest, tracker: StageTracker
    ) -> list[EncodedImage]:
        frames: list[EncodedImage] = []
        total = request.total_frames
        for index in range(total):
            tracker.enter(GenerationStage.GENERATING)
            logger.info("Generating frame %d/%d", index + 1, total)
            payload = {
                "prompt": build_animation_frame_prompt(request, index, total),
                "image": request.character_image,
                "width": ANIMATION_FRAME_SIDE,
                "height": ANIMATION_FRAME_SIDE,
            }
            try:
                output = await self._client.submit_and_await(
                    self._api_token, self._frame_model, payload
                )
            except GenerationError:
                raise
            except Exception as exc:
                raise GenerationError(
                    f"Frame {index + 1} generation failed: {exc}"
                ) from exc
            urls = normalize_output_urls(output)
            tracker.enter(GenerationStage.FETCHING_OUTPUTS)
            frames.append(await fetch_image(self._http, urls[0], "image/png"))
        return frames

    # -- direct animation ---------------------------------------------------

    def build_animation_input(
        self, prompt: str, request: DirectAnimationRequest
    ) -> dict[str, Any]:
        """Build the animation-sheet model input.

        The seed is only sent when the caller supplied one, so repeated
        iterations without a seed are randomized by the provider.
        """
        payload: dict[str, Any] = {
            "prompt": prompt,
            "style": request.style or "four_angle_walking",
            "width": request.width,
            "height": request.height,
            "return_spritesheet": request.return_spritesheet,
            "bypass_prompt_expansion": request.bypass_prompt_expansion,
        }
        if request.seed is not None:
            payload["seed"] = request.seed
        if request.input_image:
            payload["input_image"] = request.input_image
        return payload

    async def generate_direct_animation(
        self, request: DirectAnimationRequest, tracker: StageTracker
    ) -> list[EncodedImage]:
        """Generate ``clamp(quantity)`` animation sheets sequentially."""
        prompt = request.prompt
        if not request.bypass_prompt_expansion:
            tracker.enter(GenerationStage.REFINING_PROMPT)
            context = GenerationRequest(
                kind=GenerationKind.SPRITE,
                prompt=request.prompt,
                style=request.style or "pixel_art",
                viewpoint="isometric",
                aspect_ratio="1:1",
                sprite_type="character",
            )
            prompt = await self._refiner.refine(request.prompt, context, self._api_token)

        quantity = clamp_quantity(request.quantity)
        images: list[EncodedImage] = []
        for index in range(quantity):
            tracker.enter(GenerationStage.GENERATING)
            logger.info(
                "Generating animation sheet %d/%d with %s",
                index + 1,
                quantity,
                self._animation_model,
            )
            output = await self._client.submit_and_await(
                self._api_token,
                self._animation_model,
                self.build_animation_input(prompt, request),
            )
            urls = normalize_output_urls(output)
            images.extend(await self._fetch_all(urls, "image/png", tracker))

        if not images:
            raise GenerationError("No images generated")
        return images
