"""Preset-driven spritesheet generation.

A spritesheet call turns one reference character into a single
assembled sheet using the animation-sheet model and a fixed catalog of
frame geometries (:data:`ANIMATION_PRESETS`).
"""

from __future__ import annotations

import random

from pixelforge.constants import ANIMATION_SHEET_MODEL
from pixelforge.errors import PixelForgeError
from pixelforge.logging import REDACTED_IMAGE, get_logger, redact_payload
from pixelforge.models import (
    AnimationPreset,
    SheetLayout,
    SpritesheetRequest,
    SpritesheetResult,
)
from pixelforge.providers.prediction import PredictionClient
from pixelforge.utils import normalize_output_urls

logger = get_logger("spritesheet")

# Presets with more frames than this are laid out as a grid.
GRID_FRAME_THRESHOLD = 8

MAX_SEED = 999_999

ANIMATION_PRESETS: tuple[AnimationPreset, ...] = (
    AnimationPreset(
        id="four_angle_walking",
        name="4-Direction Walking",
        description=(
            "Consistent 4-direction, 4-frame walking animation for "
            "humanoid characters"
        ),
        style="four_angle_walking",
        width=48,
        height=48,
        frame_count=16,
        recommended=True,
    ),
    AnimationPreset(
        id="walking_and_idle",
        name="Walking & Idle",
        description="Consistent 4-direction walking and idle animations",
        style="walking_and_idle",
        width=48,
        height=48,
        frame_count=24,
        recommended=True,
    ),
    AnimationPreset(
        id="small_sprites",
        name="Small Sprite Actions",
        description=(
            "4-direction 32x32 sprites with various actions (walking, arm "
            "movement, looking, surprised, laying down)"
        ),
        style="small_sprites",
        width=32,
        height=32,
        frame_count=16,
    ),
    AnimationPreset(
        id="vfx",
        name="Visual Effects",
        description="Visual effects animations (24x24 to 96x96)",
        style="vfx",
        width=64,
        height=64,
        frame_count=8,
    ),
)


def get_animation_presets() -> list[AnimationPreset]:
    """Return the preset catalog in display order."""
    return list(ANIMATION_PRESETS)


def get_animation_preset(preset_id: str) -> AnimationPreset | None:
    """Look up a preset by id; ``None`` when unknown."""
    for preset in ANIMATION_PRESETS:
        if preset.id == preset_id:
            return preset
    return None


def classify_layout(frame_count: int) -> SheetLayout:
    """Sheets with more than eight frames are grids; smaller ones are strips."""
    if frame_count > GRID_FRAME_THRESHOLD:
        return SheetLayout.GRID
    return SheetLayout.HORIZONTAL


def default_prompt(preset: AnimationPreset) -> str:
    """Return the prompt used when the caller supplies none.

    Args:
        preset: The animation preset being rendered.

    Returns:
        A short sprite description naming the preset.
    """
    return f"pixel art character sprite, {preset.name.lower()}"


class SpritesheetGenerator:
    """Generate one assembled spritesheet per call.

    Args:
        client: Polling prediction client.
        model: Animation-sheet model identifier.
        rng: Random source for seeds drawn when the caller gives none.
    """

    def __init__(
        self,
        client: PredictionClient,
        model: str = ANIMATION_SHEET_MODEL,
        rng: random.Random | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._rng = rng or random.Random()

    def build_input(
        self, request: SpritesheetRequest, preset: AnimationPreset
    ) -> dict[str, object]:
        """Build the animation-sheet model input for *request*."""
        seed = request.seed
        if seed is None:
            seed = self._rng.randint(0, MAX_SEED)
        return {
            "prompt": request.custom_prompt or default_prompt(preset),
            "style": preset.style,
            "width": request.custom_width or preset.width,
            "height": request.custom_height or preset.height,
            "input_image": request.character_image_url,
            "return_spritesheet": True,
            "seed": seed,
        }

    async def generate(
        self, request: SpritesheetRequest, api_token: str
    ) -> SpritesheetResult:
        """Generate a spritesheet for *request*.

        An unknown preset fails without any network call.  Provider
        failures are reported in the result rather than raised.
        """
        preset = get_animation_preset(request.preset_id)
        if preset is None:
            return SpritesheetResult(
                success=False,
                error=f"Invalid animation preset: {request.preset_id}",
            )

        payload = self.build_input(request, preset)
        logger.info(
            "Generating spritesheet with input: %s",
            redact_payload({**payload, "input_image": REDACTED_IMAGE}),
            extra={"model": self._model},
        )
        try:
            output = await self._client.submit_and_await(api_token, self._model, payload)
            sheet_url = normalize_output_urls(output)[0]
        except PixelForgeError as exc:
            logger.error("Spritesheet generation failed: %s", exc)
            return SpritesheetResult(success=False, error=str(exc))

        return SpritesheetResult(
            success=True,
            spritesheet_url=sheet_url,
            frame_count=preset.frame_count,
            frame_width=int(payload["width"]),
            frame_height=int(payload["height"]),
            layout=classify_layout(preset.frame_count),
        )
