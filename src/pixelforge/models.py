"""Pydantic data models for generation requests, provider jobs, and results."""

from __future__ import annotations

import base64
import binascii
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

_DATA_URL_PATTERN = re.compile(r"^data:([^;,]+);base64,(.*)$", re.DOTALL)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class GenerationKind(str, Enum):
    """The kind of artwork a request asks for."""

    SPRITE = "sprite"
    SCENE = "scene"
    ANIMATION_FRAMES = "animation_frames"
    DIRECT_ANIMATION = "direct_animation"
    SPRITESHEET = "spritesheet"


class ProviderName(str, Enum):
    """External generation backends known to the orchestrator."""

    REPLICATE = "replicate"
    GEMINI = "gemini"


class SheetLayout(str, Enum):
    """How frames are arranged in an assembled spritesheet."""

    HORIZONTAL = "horizontal"
    GRID = "grid"


TERMINAL_STATUSES = frozenset({"succeeded", "failed", "canceled"})


def _require_text(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field_name} is required")
    return value


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class GenerationRequest(BaseModel):
    """Parameters for a sprite or scene generation.

    Attributes:
        kind: ``sprite`` or ``scene``.
        prompt: Free-text description supplied by the caller.
        style: ``pixel_art`` selects the pixelated preamble; any other
            value selects the flat-vector preamble.
        viewpoint: Camera viewpoint key (``front``, ``side``, ...).
        aspect_ratio: Aspect ratio key (``1:1``, ``16:9``, ...).
        colors: Ordered palette color tokens.
        dimensions: Optional explicit ``"WxH"`` target size.
        quantity: Requested image count (clamped to 1..4 before any
            provider call).
        reference_image: Optional reference image (URL or data URL).
        pose_image: Optional pose image; routes to the image-edit model.
        sprite_type: ``character`` or ``object``.
        scene_type: ``environment``, ``indoor`` or ``outdoor``.
        remove_bg: Ask the provider for a transparent background.
        tile_x: Ask for a horizontally tileable image.
        tile_y: Ask for a vertically tileable image.
    """

    kind: GenerationKind = GenerationKind.SPRITE
    prompt: str
    style: str = "pixel_art"
    viewpoint: str = "front"
    aspect_ratio: str = "1:1"
    colors: list[str] = []
    dimensions: str | None = None
    quantity: int = 2
    reference_image: str | None = None
    pose_image: str | None = None
    sprite_type: str = "character"
    scene_type: str = "environment"
    remove_bg: bool = True
    tile_x: bool = False
    tile_y: bool = False

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, v: str) -> str:
        return _require_text(v, "prompt")

    @field_validator("kind")
    @classmethod
    def _image_kinds_only(cls, v: GenerationKind) -> GenerationKind:
        if v not in (GenerationKind.SPRITE, GenerationKind.SCENE):
            raise ValueError(f"kind must be 'sprite' or 'scene', got {v.value!r}")
        return v


class AnimationFramesRequest(BaseModel):
    """Parameters for extending a character into per-frame animation poses.

    Attributes:
        character_image: The character to animate (data URL or URL).
        frame_descriptions: One pose description per output frame, in order.
        view_type: ``side``, ``isometric`` or ``top_down``.
        direction: Facing direction (``right``, ``up_left``, ...).
        animation_type: Human-readable animation name (``walk``, ``attack``).
    """

    character_image: str
    frame_descriptions: list[str]
    view_type: str = "isometric"
    direction: str = "right"
    animation_type: str = "animation"

    @field_validator("character_image")
    @classmethod
    def _image_present(cls, v: str) -> str:
        return _require_text(v, "character_image")

    @field_validator("frame_descriptions")
    @classmethod
    def _descriptions_present(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("frame_descriptions must not be empty")
        return v

    @property
    def total_frames(self) -> int:
        """Number of frames the request produces."""
        return len(self.frame_descriptions)


class DirectAnimationRequest(BaseModel):
    """Parameters for a single-call animation sheet generation."""

    prompt: str
    style: str = "four_angle_walking"
    width: int = Field(default=48, gt=0)
    height: int = Field(default=48, gt=0)
    quantity: int = 1
    seed: int | None = None
    input_image: str | None = None
    return_spritesheet: bool = True
    bypass_prompt_expansion: bool = False

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, v: str) -> str:
        return _require_text(v, "prompt")


class SpritesheetRequest(BaseModel):
    """Parameters for a preset-driven spritesheet generation.

    Attributes:
        character_image_url: Reference character the sheet animates.
        preset_id: Identifier of an :class:`AnimationPreset`.
        custom_prompt: Overrides the preset's default prompt.
        custom_width: Overrides the preset's frame width.
        custom_height: Overrides the preset's frame height.
        seed: Fixed seed; a random one is drawn when omitted.
    """

    character_image_url: str
    preset_id: str
    custom_prompt: str | None = None
    custom_width: int | None = Field(default=None, gt=0)
    custom_height: int | None = Field(default=None, gt=0)
    seed: int | None = None


class ProviderCredentials(BaseModel):
    """Caller-side credential selection.

    Attributes:
        api_key: The caller's own provider key, if they brought one.
        provider: Which backend the caller's key belongs to.
    """

    api_key: str | None = None
    provider: ProviderName = ProviderName.REPLICATE

    model_config = {"frozen": True}

    @property
    def own_key(self) -> bool:
        """True when the caller supplied their own key (no credits charged)."""
        return bool(self.api_key)


# ---------------------------------------------------------------------------
# Provider-side state
# ---------------------------------------------------------------------------


class PredictionJob(BaseModel):
    """A long-running prediction as reported by a polling provider.

    Attributes:
        id: Provider-assigned prediction identifier.
        status: ``starting``, ``processing``, ``succeeded``, ``failed`` or
            ``canceled``.
        output: A URL or ordered list of URLs (or text chunks) once
            succeeded.
        error: Provider-supplied failure text.
        urls: Provider links; ``urls["get"]`` is the polling endpoint.
    """

    id: str
    status: str
    output: Any = None
    error: str | None = None
    urls: dict[str, str] = {}

    model_config = {"extra": "ignore"}

    @field_validator("error", mode="before")
    @classmethod
    def _stringify_error(cls, v: Any) -> str | None:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @property
    def is_terminal(self) -> bool:
        """True once the job can no longer change state."""
        return self.status in TERMINAL_STATUSES

    @property
    def succeeded(self) -> bool:
        """True when the job finished with output."""
        return self.status == "succeeded"


class EncodedImage(BaseModel):
    """An image held fully in memory as bytes plus MIME type."""

    data: bytes
    mime_type: str = "image/png"

    model_config = {"frozen": True}

    @field_validator("mime_type")
    @classmethod
    def _mime_not_blank(cls, v: str) -> str:
        return _require_text(v, "mime_type")

    @property
    def extension(self) -> str:
        """File extension derived from the MIME subtype (``png``, ``webp``)."""
        subtype = self.mime_type.split("/", 1)[-1]
        return subtype.split("+", 1)[0] or "png"

    def to_data_url(self) -> str:
        """Return the image as a ``data:<mime>;base64,...`` URL."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_data_url(cls, data_url: str) -> "EncodedImage":
        """Parse a base64 data URL.

        Raises:
            ValueError: If *data_url* is not a base64 data URL.
        """
        match = _DATA_URL_PATTERN.match(data_url.strip())
        if not match:
            raise ValueError("Not a base64 data URL")
        try:
            raw = base64.b64decode(match.group(2), validate=False)
        except binascii.Error as exc:
            raise ValueError(f"Invalid base64 payload: {exc}") from exc
        return cls(data=raw, mime_type=match.group(1))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class GenerationResult(BaseModel):
    """Uniform outcome of every orchestration call.

    ``images`` is filled by sprite, scene and direct-animation calls;
    ``frames`` by the frame-extension flow.
    """

    success: bool
    images: list[EncodedImage] = []
    frames: list[EncodedImage] = []
    provider: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _success_has_output(self) -> "GenerationResult":
        if self.success and not (self.images or self.frames):
            raise ValueError("a successful result must carry images or frames")
        if not self.success and not self.error:
            self.error = "Generation failed"
        return self

    @classmethod
    def failure(cls, error: str, provider: str | None = None) -> "GenerationResult":
        """Build a failed result with *error* as its message."""
        return cls(success=False, error=error or "Generation failed", provider=provider)


class AnimationPreset(BaseModel):
    """A fixed frame geometry for preset-driven spritesheets."""

    id: str
    name: str
    description: str
    style: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    frame_count: int = Field(gt=0)
    recommended: bool = False

    model_config = {"frozen": True}


class SpritesheetResult(BaseModel):
    """Outcome of a spritesheet generation."""

    success: bool
    spritesheet_url: str | None = None
    frame_count: int = 0
    frame_width: int = 0
    frame_height: int = 0
    layout: SheetLayout = SheetLayout.HORIZONTAL
    error: str | None = None


class NamingContext(BaseModel):
    """Inputs used to derive a storage key for a persisted artifact.

    Attributes:
        owner_id: Identifier of the user who owns the artifact.
        asset_type: ``sprite``, ``scene`` or ``animation``.
        project_id: Optional project the artifact belongs to.
        label: Optional human-readable suffix (e.g. a preset name).
    """

    owner_id: str
    asset_type: str = "sprite"
    project_id: str | None = None
    label: str | None = None

    @field_validator("owner_id")
    @classmethod
    def _owner_not_blank(cls, v: str) -> str:
        return _require_text(v, "owner_id")
