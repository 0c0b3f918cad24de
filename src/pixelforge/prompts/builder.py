"""Deterministic prompt builders for image models.

These functions are pure: identical inputs always produce byte-identical
prompts.  :func:`build_prompt` doubles as the fallback whenever the
refinement stage cannot produce an enhanced prompt.
"""

from __future__ import annotations

from pixelforge.constants import (
    ASPECT_RATIO_DIMENSIONS,
    DEFAULT_DIMENSIONS,
    FRAME_DIRECTION_CLAUSES,
    FRAME_VIEW_CLAUSES,
    PARTIAL_BODY_MARKERS,
    VIEWPOINT_CLAUSES,
)
from pixelforge.models import AnimationFramesRequest, GenerationKind, GenerationRequest

# ---------------------------------------------------------------------------
# Fixed prompt fragments
# ---------------------------------------------------------------------------

PIXEL_ART_PREAMBLE: str = (
    "Create a pixel art style image. Use clear pixel boundaries, limited "
    "color palette, and retro game aesthetic. "
)

FLAT_VECTOR_PREAMBLE: str = (
    "Create a 2D flat style image with clean lines, solid colors, and "
    "modern vector-like appearance. "
)

FULL_BODY_CLAUSE: str = (
    "IMPORTANT: Generate a FULL-BODY character showing the entire figure "
    "from head to feet. The character must be fully visible and standing, "
    "NOT cropped at the chest, waist, or knees. "
)

QUALITY_SUFFIX: str = " High quality, detailed, game-ready asset."

FRAME_PREAMBLE: str = (
    "You are given a reference image of a game character sprite. "
    "Generate a new frame showing this EXACT same character in a different "
    "pose for animation. "
    "CRITICAL: The character must look IDENTICAL - same art style, same "
    "colors, same outfit, same proportions. "
    "Only the pose/position changes. "
)

FRAME_CLOSING: str = (
    "\n\nIMPORTANT: Keep EXACT same character design, colors, art style. "
    "Single character, centered, transparent background. "
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def wants_partial_character(prompt: str) -> bool:
    """Return True if *prompt* explicitly asks for a partial body.

    Args:
        prompt: The caller's free-text prompt.

    Returns:
        True when any partial-body marker occurs (case-insensitive).
    """
    lowered = prompt.lower()
    return any(marker in lowered for marker in PARTIAL_BODY_MARKERS)


def get_image_dimensions(aspect_ratio: str | None) -> tuple[int, int]:
    """Map an aspect-ratio key to ``(width, height)`` in pixels.

    Unknown or missing ratios map to 1024×1024.
    """
    if not aspect_ratio:
        return DEFAULT_DIMENSIONS
    return ASPECT_RATIO_DIMENSIONS.get(aspect_ratio, DEFAULT_DIMENSIONS)


def style_preamble(style: str) -> str:
    """Return the fixed style preamble for *style*."""
    return PIXEL_ART_PREAMBLE if style == "pixel_art" else FLAT_VECTOR_PREAMBLE


def _type_preamble(request: GenerationRequest) -> str:
    if request.kind is GenerationKind.SPRITE:
        is_object = request.sprite_type == "object"
        entity = "object/item" if is_object else "character"
        text = (
            f"This is a game sprite {entity} that should be suitable for use "
            "in a 2D video game. "
            "The sprite should have a transparent or solid color background "
            "that can be easily removed. "
        )
        if not is_object and not wants_partial_character(request.prompt):
            text += FULL_BODY_CLAUSE
        return text

    environment = "indoor" if request.scene_type == "indoor" else "outdoor"
    return (
        f"This is an {environment} game scene or background environment "
        "for a 2D video game. "
    )


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_prompt(request: GenerationRequest) -> str:
    """Build the full image-model instruction for a sprite or scene.

    Sections are emitted in a fixed order: style preamble, type preamble,
    viewpoint, target pixel size, palette, sprite-size hint, the raw user
    prompt, and a quality suffix.

    Args:
        request: The validated generation request.

    Returns:
        The instruction string.
    """
    parts: list[str] = [
        style_preamble(request.style),
        _type_preamble(request),
        VIEWPOINT_CLAUSES.get(request.viewpoint, ""),
    ]

    width, height = get_image_dimensions(request.aspect_ratio)
    parts.append(
        f"The image should be {width}x{height} pixels "
        f"({request.aspect_ratio} aspect ratio). "
    )

    if request.colors:
        parts.append(
            f"Use these colors prominently in the design: {', '.join(request.colors)}. "
        )

    if request.dimensions and request.kind is GenerationKind.SPRITE:
        parts.append(
            f"The sprite should be designed to look good at {request.dimensions} "
            "pixel dimensions. "
        )

    parts.append(request.prompt)
    parts.append(QUALITY_SUFFIX)
    return "".join(parts)


def build_animation_frame_prompt(
    request: AnimationFramesRequest,
    frame_index: int,
    total_frames: int,
) -> str:
    """Build the prompt for one frame of a frame-extension animation.

    Args:
        request: The animation request (character image + pose list).
        frame_index: 0-based index of the frame being generated.
        total_frames: Number of frames in the sequence.

    Returns:
        A prompt that pins the character's identity and states the
        frame's 1-based position, view, direction and pose.
    """
    parts: list[str] = [
        FRAME_PREAMBLE,
        f"\n\nThis is frame {frame_index + 1} of {total_frames} for a "
        f'"{request.animation_type}" animation sequence. ',
        FRAME_VIEW_CLAUSES.get(request.view_type, FRAME_VIEW_CLAUSES["isometric"]),
        FRAME_DIRECTION_CLAUSES.get(
            request.direction, FRAME_DIRECTION_CLAUSES["right"]
        ),
    ]

    if frame_index < len(request.frame_descriptions):
        pose = request.frame_descriptions[frame_index]
        if pose:
            parts.append(f"\n\nPOSE FOR THIS FRAME: {pose}. ")

    parts.append(FRAME_CLOSING)
    return "".join(parts)
